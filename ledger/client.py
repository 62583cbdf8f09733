"""
ledger/client.py - Ledger Chain API Client

Talks to a node's /v1/chain API:
- Account state queries (balances, stake, permissions, privileged flag)
- Token supply lookup from the token contract's stat table
- Transaction submission (reference block, action serialization,
  signatures from the injected signer, push)

Async HTTP via httpx. Failures raise LedgerError subclasses; there is no
retry at this layer or any other.
"""

import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

import httpx

from config import SnapshotConfig
from core.exceptions import (
    ErrorCode,
    LedgerError,
    LedgerQueryError,
    TransactionSubmissionError,
)
from ledger.http import post_json
from ledger.models import LiveAccount
from ledger.signer import TransactionSigner
from utils.formatters import parse_asset

logger = logging.getLogger(__name__)

_BLOCK_TIME_FORMAT = "%Y-%m-%dT%H:%M:%S"


def _parse_block_time(value: str) -> datetime:
    # Block timestamps look like '2018-06-01T12:00:00.500'
    return datetime.strptime(value.split(".")[0], _BLOCK_TIME_FORMAT)


class LedgerClient:
    """
    Chain API client.

    Usage:
        async with LedgerClient("http://127.0.0.1:8888") as ledger:
            account = await ledger.get_account("alice")
    """

    def __init__(
        self,
        http_endpoint: str = "",
        signer: Optional[TransactionSigner] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.http_endpoint = (http_endpoint or SnapshotConfig.HTTP_ENDPOINT).rstrip("/")
        self.signer = signer
        self._client = httpx.AsyncClient(
            timeout=timeout or SnapshotConfig.LEDGER_TIMEOUT,
            transport=transport,
        )
        self.transactions_pushed = 0

    async def __aenter__(self) -> "LedgerClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def _post(self, path: str, body: Any = None, account_name: Optional[str] = None) -> Any:
        return await post_json(
            self._client, f"{self.http_endpoint}{path}", body, account_name=account_name
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_info(self) -> Dict[str, Any]:
        return await self._post("/v1/chain/get_info")

    async def get_block(self, block_num_or_id: Any) -> Dict[str, Any]:
        return await self._post("/v1/chain/get_block", {"block_num_or_id": block_num_or_id})

    async def get_account(self, account_name: str) -> LiveAccount:
        payload = await self._post(
            "/v1/chain/get_account", {"account_name": account_name}, account_name=account_name
        )
        try:
            return LiveAccount.from_rpc(payload)
        except (KeyError, TypeError, ValueError) as e:
            raise LedgerQueryError(
                f"Malformed get_account reply for {account_name}: {e}",
                path="/v1/chain/get_account",
                account_name=account_name,
                error_code=ErrorCode.QUERY_MALFORMED,
                cause=e,
            ) from e

    async def get_token_supply(
        self, contract: str = "", symbol: str = ""
    ) -> Decimal:
        """Total issued supply of `symbol` from `contract`'s stat table."""
        contract = contract or SnapshotConfig.TOKEN_CONTRACT
        symbol = symbol or SnapshotConfig.TOKEN_SYMBOL
        path = "/v1/chain/get_table_rows"
        reply = await self._post(path, {
            "code": contract,
            "table": "stat",
            "scope": symbol,
            "json": True,
        })
        rows = reply.get("rows") if isinstance(reply, dict) else None
        if not rows:
            raise LedgerQueryError(
                f"No {symbol} stat row in {contract}",
                path=path,
                error_code=ErrorCode.QUERY_MALFORMED,
            )
        try:
            return parse_asset(rows[0]["supply"])
        except (KeyError, TypeError, ValueError) as e:
            raise LedgerQueryError(
                f"Malformed {symbol} supply row: {rows[0]!r}",
                path=path,
                error_code=ErrorCode.QUERY_MALFORMED,
                cause=e,
            ) from e

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    async def _serialize_action(self, action: Dict[str, Any]) -> Dict[str, Any]:
        reply = await self._post("/v1/chain/abi_json_to_bin", {
            "code": action["account"],
            "action": action["name"],
            "args": action["data"],
        })
        return {**action, "data": reply["binargs"]}

    async def _build_transaction(self, actions: List[Dict[str, Any]]) -> tuple:
        info = await self.get_info()
        ref_num = max(1, int(info["head_block_num"]) - SnapshotConfig.BLOCKS_BEHIND)
        block = await self.get_block(ref_num)
        expiration = _parse_block_time(block["timestamp"]) + timedelta(
            seconds=SnapshotConfig.EXPIRE_SECONDS
        )
        serialized = [await self._serialize_action(a) for a in actions]
        transaction = {
            "expiration": expiration.strftime(_BLOCK_TIME_FORMAT),
            "ref_block_num": int(block["block_num"]) & 0xFFFF,
            "ref_block_prefix": int(block["ref_block_prefix"]),
            "max_net_usage_words": 0,
            "max_cpu_usage_ms": 0,
            "delay_sec": 0,
            "context_free_actions": [],
            "actions": serialized,
            "transaction_extensions": [],
        }
        return transaction, info["chain_id"]

    async def transact(self, actions: List[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Sign and push one transaction holding `actions` in order.

        Raises TransactionSubmissionError on any failure, carrying the batch.
        """
        if self.signer is None:
            raise TransactionSubmissionError("No signer configured", batch=actions)
        try:
            transaction, chain_id = await self._build_transaction(actions)
            available = await self.signer.public_keys()
            required = await self._post("/v1/chain/get_required_keys", {
                "transaction": transaction,
                "available_keys": available,
            })
            signatures = await self.signer.sign(
                transaction, required.get("required_keys", []), chain_id
            )
            result = await self._post("/v1/chain/push_transaction", {
                "signatures": signatures,
                "compression": "none",
                "packed_context_free_data": "",
                "transaction": transaction,
            })
        except LedgerError as e:
            raise TransactionSubmissionError(
                f"Transaction with {len(actions)} actions failed: {e.message}",
                batch=actions,
                cause=e,
            ) from e
        except (KeyError, TypeError, ValueError) as e:
            raise TransactionSubmissionError(
                f"Transaction with {len(actions)} actions failed: unexpected reply ({e})",
                batch=actions,
                cause=e,
            ) from e

        self.transactions_pushed += 1
        logger.debug(
            f"Pushed transaction {result.get('transaction_id', '?')} "
            f"with {len(actions)} actions"
        )
        return result
