"""
ledger/signer.py - Signing capability for transaction submission.

The tool never handles signature math. A TransactionSigner is handed to the
LedgerClient at startup; the shipped WalletSigner delegates to a wallet
daemon, importing the configured private key into an unlocked wallet.
"""

import logging
from typing import Any, Dict, List, Optional, Protocol

import httpx

from config import SnapshotConfig
from core.exceptions import LedgerError, LedgerQueryError, SigningError
from ledger.http import post_json

logger = logging.getLogger(__name__)


class TransactionSigner(Protocol):
    async def public_keys(self) -> List[str]:
        """Keys this signer can sign with."""
        ...

    async def sign(
        self, transaction: Dict[str, Any], public_keys: List[str], chain_id: str
    ) -> List[str]:
        """Signatures over `transaction` for each of `public_keys`."""
        ...


class WalletSigner:
    """
    Signs through a wallet daemon's /v1/wallet API.

    The wallet must exist and be unlocked. The private key is imported on
    first use; a wallet that already holds the key is accepted as is.
    """

    KEY_EXISTS = "key_exist"

    def __init__(
        self,
        private_key: str,
        wallet_url: str = "",
        wallet_name: str = "",
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._private_key = private_key
        self.wallet_url = (wallet_url or SnapshotConfig.WALLET_URL).rstrip("/")
        self.wallet_name = wallet_name or SnapshotConfig.WALLET_NAME
        self._client = httpx.AsyncClient(
            timeout=timeout or SnapshotConfig.LEDGER_TIMEOUT,
            transport=transport,
        )
        self._key_imported = False
        self._public_keys: Optional[List[str]] = None

    async def _post(self, path: str, body: Any = None) -> Any:
        return await post_json(self._client, f"{self.wallet_url}{path}", body)

    async def _import_key(self) -> None:
        if self._key_imported:
            return
        try:
            await self._post("/v1/wallet/import_key", [self.wallet_name, self._private_key])
            logger.info(f"Imported signing key into wallet '{self.wallet_name}'")
        except LedgerQueryError as e:
            if e.remote_error != self.KEY_EXISTS:
                raise SigningError(f"Could not import signing key: {e.message}", cause=e) from e
            logger.debug(f"Wallet '{self.wallet_name}' already holds the signing key")
        self._key_imported = True

    async def public_keys(self) -> List[str]:
        if self._public_keys is None:
            await self._import_key()
            try:
                keys = await self._post("/v1/wallet/get_public_keys")
            except LedgerError as e:
                raise SigningError(f"Could not list wallet keys: {e.message}", cause=e) from e
            if not keys:
                raise SigningError(f"Wallet '{self.wallet_name}' exposes no keys; is it unlocked?")
            self._public_keys = list(keys)
        return list(self._public_keys)

    async def sign(
        self, transaction: Dict[str, Any], public_keys: List[str], chain_id: str
    ) -> List[str]:
        await self._import_key()
        try:
            signed = await self._post(
                "/v1/wallet/sign_transaction", [transaction, public_keys, chain_id]
            )
        except LedgerError as e:
            raise SigningError(f"Wallet refused to sign: {e.message}", cause=e) from e
        signatures = signed.get("signatures") if isinstance(signed, dict) else None
        if not signatures:
            raise SigningError("Wallet returned no signatures")
        return list(signatures)

    async def close(self) -> None:
        await self._client.aclose()
