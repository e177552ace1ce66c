"""
Minimal Solana JSON-RPC client over aiohttp.

Covers the two HTTP calls the bot needs (getTransaction,
getTokenAccountBalance). The logsSubscribe websocket lives in the listener.
No solana-py dependency.
"""
import asyncio
import logging
import time

import aiohttp

logger = logging.getLogger("sol_rpc")


class RpcError(Exception):
    """JSON-RPC call returned an error payload or a bad HTTP status."""


class SubscriptionError(RpcError):
    """logsSubscribe was refused by the node."""


class SolanaRpcClient:
    """Shared HTTP client. Optional min interval between calls for rate-limited nodes."""

    def __init__(self, http_url: str, min_interval: float = 0.0, timeout: float = 10.0):
        self.http_url = http_url
        self.min_interval = min_interval
        self.timeout = timeout
        self._session: aiohttp.ClientSession | None = None
        self._lock = asyncio.Lock()
        self._last_call: float = 0.0
        self._next_id = 0

    @property
    def session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
        return self._session

    async def close(self):
        if self._session and not self._session.closed:
            await self._session.close()

    async def _throttle(self):
        if self.min_interval <= 0:
            return
        async with self._lock:
            wait = self.min_interval - (time.time() - self._last_call)
            if wait > 0:
                await asyncio.sleep(wait)
            self._last_call = time.time()

    async def call(self, method: str, params: list):
        """POST one JSON-RPC request and return its `result`."""
        await self._throttle()
        self._next_id += 1
        async with self.session.post(
            self.http_url,
            json={
                "jsonrpc": "2.0",
                "id": self._next_id,
                "method": method,
                "params": params,
            },
        ) as resp:
            if resp.status != 200:
                raise RpcError(f"{method}: HTTP {resp.status}")
            data = await resp.json()

        if data.get("error"):
            raise RpcError(f"{method}: {data['error']}")
        return data.get("result")

    async def get_transaction(self, signature: str) -> dict | None:
        """Raw (json-encoded) transaction incl. v0 loaded addresses. None if not yet visible."""
        return await self.call(
            "getTransaction",
            [
                signature,
                {
                    "encoding": "json",
                    "maxSupportedTransactionVersion": 0,
                    "commitment": "confirmed",
                },
            ],
        )

    async def get_token_account_balance(self, address: str) -> float | None:
        """UI amount of an SPL token account. None when the node reports no amount."""
        result = await self.call(
            "getTokenAccountBalance",
            [address, {"commitment": "confirmed"}],
        )
        value = (result or {}).get("value") or {}
        amount = value.get("uiAmount")
        if amount is None:
            return None
        return float(amount)
