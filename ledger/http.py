"""
ledger/http.py - JSON POST helper shared by the chain and wallet clients.

Node and wallet APIs answer errors with a JSON body such as
    {"code": 500, "message": "...", "error": {"code": 3010001, "name": "...", "what": "...",
     "details": [{"message": "..."}]}}
which is folded into a LedgerQueryError. Nothing here retries.
"""

import logging
from typing import Any, Optional

import httpx

from core.exceptions import ErrorCode, LedgerConnectionError, LedgerQueryError

logger = logging.getLogger(__name__)


def _describe_error(resp: httpx.Response) -> tuple:
    try:
        body = resp.json()
    except ValueError:
        return resp.text[:500] or resp.reason_phrase, None
    if not isinstance(body, dict):
        return str(body)[:500], None
    error = body.get("error") or {}
    details = "; ".join(
        d.get("message", "") for d in error.get("details") or [] if isinstance(d, dict)
    )
    what = error.get("what") or body.get("message") or resp.reason_phrase
    message = f"{what}: {details}" if details else what
    return message, error.get("name")


async def post_json(
    client: httpx.AsyncClient,
    url: str,
    body: Any = None,
    *,
    account_name: Optional[str] = None,
) -> Any:
    """POST a JSON body and return the decoded reply."""
    try:
        resp = await client.post(url, json=body)
    except httpx.TimeoutException as e:
        raise LedgerConnectionError(
            f"Timed out calling {url}", url=url, timed_out=True, cause=e
        ) from e
    except httpx.RequestError as e:
        raise LedgerConnectionError(f"Request to {url} failed: {e}", url=url, cause=e) from e

    if resp.status_code >= 400:
        message, remote_error = _describe_error(resp)
        raise LedgerQueryError(
            f"{url} returned {resp.status_code}: {message}",
            path=url,
            status_code=resp.status_code,
            account_name=account_name,
            remote_error=remote_error,
        )

    if resp.status_code == 204 or not resp.content:
        return {}
    try:
        return resp.json()
    except ValueError as e:
        raise LedgerQueryError(
            f"{url} returned a non-JSON body",
            path=url,
            status_code=resp.status_code,
            account_name=account_name,
            error_code=ErrorCode.QUERY_MALFORMED,
            cause=e,
        ) from e
