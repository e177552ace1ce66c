"""
Raydium pool-creation listener.

Detects new pools via WebSocket logsSubscribe on the target program.
Flow:
  1. Subscribe to logs mentioning the program (commitment "confirmed")
  2. Skip failed transactions, match creation log markers
  3. Fetch the raw tx (getTransaction, v0 supported), retrying while the
     node has not caught up yet
  4. Resolve the account table (static keys + lookup-table addresses)
     and locate the program's instruction
  5. Decode mints/vaults by position, classify base vs quote
  6. Hand the ClassifiedPool to the on_pool callback

Uses raw WebSocket via aiohttp (no solana-py dependency).
Auto-reconnects with exponential backoff on disconnect.
"""
import asyncio
import json
import logging
import time
from collections import deque
from dataclasses import dataclass, field

import aiohttp

from clmm.accounts import resolve_instruction
from clmm.classifier import ClassifiedPool, classify_pool
from clmm.constants import (
    RAYDIUM_CLMM,
    RAYDIUM_CPMM,
    CLMM_CREATE_MARKERS,
    CPMM_CREATE_MARKERS,
)
from clmm.decoder import (
    CLMM_CREATE_POOL_V1,
    CPMM_INITIALIZE_V1,
    DecodeError,
    PoolLayout,
    UnresolvedAccount,
    decode_pool_accounts,
)
from clmm.rpc import SubscriptionError

logger = logging.getLogger("pool_listener")


@dataclass(frozen=True)
class TargetProgram:
    name: str
    program_id: str
    markers: tuple[str, ...]
    layout: PoolLayout


TARGETS: dict[str, TargetProgram] = {
    "clmm": TargetProgram("clmm", RAYDIUM_CLMM, CLMM_CREATE_MARKERS, CLMM_CREATE_POOL_V1),
    "cpmm": TargetProgram("cpmm", RAYDIUM_CPMM, CPMM_CREATE_MARKERS, CPMM_INITIALIZE_V1),
}


@dataclass(frozen=True)
class RawCreationEvent:
    signature: str
    observed_at: float = field(default_factory=time.time)


def is_creation_log(logs: list[str], markers) -> bool:
    """True if any log line is exactly one of the markers."""
    return any(line.strip() in markers for line in logs)


class PoolCreationListener:
    """
    Watches one program for pool creations and reports classified pools.

    `on_pool` is an async callback(event, pool). Rejected or irrelevant
    transactions never reach it.
    """

    def __init__(
        self,
        wss_url: str,
        rpc,
        target: TargetProgram,
        quote_mints,
        on_pool,
        fetch_attempts: int = 5,
        fetch_retry_delay: float = 0.5,
    ):
        self.wss_url = wss_url
        self.rpc = rpc
        self.target = target
        self.quote_mints = frozenset(quote_mints)
        self.on_pool = on_pool
        self.fetch_attempts = max(1, fetch_attempts)
        self.fetch_retry_delay = fetch_retry_delay
        self._session: aiohttp.ClientSession | None = None
        self._running = False
        self._subscribed_once = False
        self._tasks: set[asyncio.Task] = set()
        self._seen: set[str] = set()
        self._seen_order: deque[str] = deque(maxlen=5000)
        # Stats
        self.creations_seen: int = 0
        self.pools_detected: int = 0
        self.pools_skipped: int = 0
        self.fetch_failures: int = 0

    async def start(self):
        """
        Connect and listen until stopped.

        A refused or unreachable subscription on the very first attempt is
        fatal and propagates; later disconnects are retried with backoff.
        """
        self._running = True
        self._session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=30)
        )
        logger.info(
            f"Starting pool listener ({self.target.name} {self.target.program_id[:8]}...)"
        )

        backoff = 1
        try:
            while self._running:
                try:
                    await self._connect_and_listen()
                    backoff = 1  # reset on clean exit
                except asyncio.CancelledError:
                    break
                except Exception as e:
                    if not self._subscribed_once:
                        raise
                    logger.error(f"Solana WebSocket error: {e}")
                    await asyncio.sleep(min(backoff, 30))
                    backoff = min(backoff * 2, 30)
        finally:
            if self._session and not self._session.closed:
                await self._session.close()

    async def stop(self):
        self._running = False
        for task in list(self._tasks):
            task.cancel()
        if self._session and not self._session.closed:
            await self._session.close()

    async def _connect_and_listen(self):
        """Single WebSocket connection lifecycle."""
        logger.info("Connecting to Solana WebSocket...")

        async with self._session.ws_connect(
            self.wss_url,
            heartbeat=30,
            max_msg_size=0,  # no limit
        ) as ws:
            await ws.send_json({
                "jsonrpc": "2.0",
                "id": 1,
                "method": "logsSubscribe",
                "params": [
                    {"mentions": [self.target.program_id]},
                    {"commitment": "confirmed"},
                ],
            })

            resp = await ws.receive_json(timeout=10)
            sub_id = resp.get("result")
            if sub_id is None:
                raise SubscriptionError(
                    f"logsSubscribe refused: {resp.get('error', {})}"
                )

            self._subscribed_once = True
            logger.info(f"Subscription active (id={sub_id})")

            async for msg in ws:
                if not self._running:
                    break
                if msg.type == aiohttp.WSMsgType.TEXT:
                    try:
                        data = json.loads(msg.data)
                    except ValueError as e:
                        logger.debug(f"Message parse error: {e}")
                        continue
                    self.handle_notification(data)
                elif msg.type in (
                    aiohttp.WSMsgType.CLOSED,
                    aiohttp.WSMsgType.ERROR,
                ):
                    logger.warning("Solana WebSocket closed, reconnecting...")
                    break

    def handle_notification(self, data: dict) -> asyncio.Task | None:
        """
        Filter one logsNotification. Matching creations are processed in a
        background task so the socket reader never waits on RPC.
        """
        if data.get("method") != "logsNotification":
            return None

        value = data.get("params", {}).get("result", {}).get("value", {})
        signature = value.get("signature")
        logs = value.get("logs") or []

        # Skip failed transactions
        if value.get("err") is not None or not signature:
            return None
        if not is_creation_log(logs, self.target.markers):
            return None
        if signature in self._seen:
            return None
        self._remember(signature)

        self.creations_seen += 1
        logger.debug(f"[create] {signature[:16]}... fetching tx")
        task = asyncio.create_task(self.process_event(RawCreationEvent(signature)))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _remember(self, signature: str):
        if len(self._seen_order) == self._seen_order.maxlen:
            self._seen.discard(self._seen_order[0])
        self._seen_order.append(signature)
        self._seen.add(signature)

    async def fetch_transaction(self, signature: str) -> dict | None:
        """getTransaction with bounded retry. None once all attempts came back empty."""
        for attempt in range(1, self.fetch_attempts + 1):
            try:
                tx = await self.rpc.get_transaction(signature)
            except Exception as e:
                logger.debug(f"getTransaction {signature[:16]}... attempt {attempt} failed: {e}")
                tx = None
            if tx:
                return tx
            if attempt < self.fetch_attempts:
                await asyncio.sleep(self.fetch_retry_delay)
        return None

    async def process_event(self, event: RawCreationEvent) -> ClassifiedPool | None:
        """Fetch → resolve → decode → classify one creation. Returns the pool if handed off."""
        try:
            return await self._process(event)
        except Exception as e:
            logger.warning(f"[anomaly] {event.signature[:16]}... processing error: {e!r}")
            return None

    async def _process(self, event: RawCreationEvent) -> ClassifiedPool | None:
        signature = event.signature

        tx = await self.fetch_transaction(signature)
        if tx is None:
            self.fetch_failures += 1
            logger.debug(
                f"[skip] {signature[:16]}... tx not available after {self.fetch_attempts} attempts"
            )
            return None

        pool = self.extract_pool(tx, signature)
        if pool is None:
            self.pools_skipped += 1
            return None

        self.pools_detected += 1
        logger.info(
            f"[pool] token={pool.base_mint} quote={pool.quote_mint[:8]}... "
            f"sig={signature[:16]}... latency={time.time() - event.observed_at:.1f}s"
        )
        await self.on_pool(event, pool)
        return pool

    def extract_pool(self, tx: dict, signature: str = "") -> ClassifiedPool | None:
        """Run the decoding pipeline on a fetched transaction. None = not applicable."""
        try:
            resolved = resolve_instruction(tx, self.target.program_id)
            if resolved is None:
                logger.debug(f"[skip] {signature[:16]}... program not invoked")
                return None
            table, instruction = resolved
            accounts = decode_pool_accounts(instruction, table, self.target.layout)
        except UnresolvedAccount as e:
            logger.warning(f"[anomaly] {signature[:16]}... {e}")
            return None
        except DecodeError as e:
            logger.debug(f"[skip] {signature[:16]}... {e}")
            return None

        pool = classify_pool(accounts, self.quote_mints)
        if pool is None:
            logger.debug(
                f"[skip] {signature[:16]}... no single quote mint "
                f"({accounts.mint0[:8]}../{accounts.mint1[:8]}..)"
            )
        return pool
