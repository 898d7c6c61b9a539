"""
Circle Programmable Wallets (user-controlled) API client.

The backend proxies the provider so the browser never sees the API key.
Every call carries the user's wallet credential in X-User-Token; the provider
scopes the answer to that user. Funds only move through challenges that the
browser-side SDK executes with secrets this service never holds.

Docs: https://developers.circle.com/w3s/reference
"""

import logging
import uuid
from typing import Any, Optional
from urllib.parse import quote

import httpx

from ..core.config import get_settings
from ..core.errors import AlreadyInitialized, UpstreamFailure
from ..models import TokenBalance, Transaction, TransferRequest, Wallet

logger = logging.getLogger(__name__)

# Provider error code: user already initialized (wallet already exists)
CIRCLE_ALREADY_INITIALIZED = 155106


def new_idempotency_key() -> str:
    """Fresh key per attempt. A new key means a new intent, not a retry."""
    return str(uuid.uuid4())


class CustodyGateway:
    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        settings = get_settings()
        self._api_key = api_key if api_key is not None else settings.circle_api_key
        self._base_url = (base_url or settings.circle_base_url).rstrip("/")
        self._client = client

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(connect=10, read=30, write=10, pool=10),
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    def _headers(self, credential: Optional[str] = None) -> dict[str, str]:
        if not self._api_key:
            raise UpstreamFailure("CIRCLE_API_KEY is required for the user wallet API")
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }
        if credential:
            headers["X-User-Token"] = credential
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        action: str,
        credential: Optional[str] = None,
        **kwargs: Any,
    ) -> dict:
        """Send one request and return the `data` member of the provider's envelope."""
        url = f"{self._base_url}{path}"
        headers = self._headers(credential)

        try:
            resp = await self._get_client().request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.error("Circle %s transport error: %s", action, e)
            raise UpstreamFailure(f"Circle {action} failed: {e}")

        if resp.status_code >= 400:
            body = resp.text[:500]
            code = None
            try:
                err = resp.json()
                if isinstance(err, dict):
                    code = err.get("code")
            except ValueError:
                pass
            logger.error("Circle %s error %d: %s", action, resp.status_code, body)
            raise UpstreamFailure(
                f"Circle {action} failed: {resp.status_code} {body}",
                status=resp.status_code,
                code=code,
            )

        return resp.json().get("data") or {}

    # ── Onboarding ───────────────────────────────────────────────────

    async def create_device_token(self, device_id: str) -> dict:
        """Social login: device id from the SDK → {deviceToken, deviceEncryptionKey}."""
        return await self._request(
            "POST",
            "/v1/w3s/users/social/token",
            "device token",
            json={"idempotencyKey": new_idempotency_key(), "deviceId": device_id},
        )

    async def initialize_user(
        self,
        credential: str,
        account_type: Optional[str] = None,
        blockchains: Optional[list[str]] = None,
    ) -> dict:
        """
        Initialize the custody user and get a wallet-creation challenge.

        Returns: {"challengeId": "..."}
        Raises: AlreadyInitialized if the user already has wallets.
        """
        settings = get_settings()
        payload = {
            "idempotencyKey": new_idempotency_key(),
            "accountType": account_type or settings.circle_default_account_type,
            "blockchains": blockchains or settings.default_blockchains,
        }
        try:
            return await self._request(
                "POST", "/v1/w3s/user/initialize", "initialize user",
                credential=credential, json=payload,
            )
        except UpstreamFailure as e:
            if e.code == CIRCLE_ALREADY_INITIALIZED:
                raise AlreadyInitialized(e.message, status=e.status, code=e.code)
            raise

    # ── Reads ────────────────────────────────────────────────────────

    async def list_wallets(self, credential: str) -> list[Wallet]:
        data = await self._request("GET", "/v1/w3s/wallets", "list wallets", credential=credential)
        return [Wallet.model_validate(w) for w in data.get("wallets") or []]

    async def get_wallet(self, credential: str, wallet_id: str) -> Wallet:
        data = await self._request(
            "GET", f"/v1/w3s/wallets/{quote(wallet_id, safe='')}", "get wallet",
            credential=credential,
        )
        return Wallet.model_validate(data.get("wallet") or {})

    async def get_balance(self, credential: str, wallet_id: str) -> list[TokenBalance]:
        data = await self._request(
            "GET", f"/v1/w3s/wallets/{quote(wallet_id, safe='')}/balances", "wallet balance",
            credential=credential,
        )
        return [TokenBalance.from_provider(b) for b in data.get("tokenBalances") or []]

    async def list_transactions(
        self,
        credential: str,
        wallet_ids: Optional[list[str]] = None,
        tx_type: Optional[str] = None,
        state: Optional[str] = None,
        page_size: Optional[int] = None,
    ) -> list[Transaction]:
        params: dict[str, str] = {}
        if wallet_ids:
            params["walletIds"] = ",".join(wallet_ids)
        if tx_type:
            params["txType"] = tx_type
        if state:
            params["state"] = state
        if page_size:
            params["pageSize"] = str(page_size)

        data = await self._request(
            "GET", "/v1/w3s/transactions", "list transactions",
            credential=credential, params=params,
        )
        return [Transaction.model_validate(t) for t in data.get("transactions") or []]

    async def get_transaction(self, credential: str, transaction_id: str) -> Transaction:
        data = await self._request(
            "GET", f"/v1/w3s/transactions/{quote(transaction_id, safe='')}", "get transaction",
            credential=credential,
        )
        return Transaction.model_validate(data.get("transaction") or {})

    # ── Challenges ───────────────────────────────────────────────────

    async def create_challenge(self, credential: str, request: TransferRequest) -> str:
        """
        Create a transfer challenge for the user to sign. Moves nothing.

        Returns: the challengeId the browser SDK executes.
        """
        payload = {
            "idempotencyKey": request.idempotency_key,
            "walletId": request.wallet_id,
            "tokenId": request.token_id,
            "destinationAddress": request.destination_address,
            "amounts": [request.amount],
            "feeLevel": request.fee_level,
        }
        data = await self._request(
            "POST", "/v1/w3s/user/transactions/transfer", "create transfer challenge",
            credential=credential, json=payload,
        )
        challenge_id = data.get("challengeId")
        if not challenge_id:
            raise UpstreamFailure("Circle create transfer challenge returned no challengeId")
        logger.info("Transfer challenge created: wallet=%s challenge=%s", request.wallet_id, challenge_id)
        return challenge_id


_gateway: Optional[CustodyGateway] = None


def get_gateway() -> CustodyGateway:
    global _gateway
    if _gateway is None:
        _gateway = CustodyGateway()
    return _gateway


async def close_gateway() -> None:
    """Close the shared HTTP client. Call on app shutdown."""
    global _gateway
    if _gateway is not None:
        await _gateway.close()
        _gateway = None
