"""
Paper trader — one simulated position per detected pool.

SessionManager owns the registry of TrackingSessions. Each session runs its
own polling task: read both vault balances, derive price = quote / token,
track entry / max / PnL, and let the exit policy decide when to close.
Nothing is bought or sold; balances are only observed.
"""
import asyncio
import itertools
import logging
import time
from dataclasses import dataclass, field

from exit_policy import MANUAL_STOP

logger = logging.getLogger("paper_trader")

OPEN = "OPEN"
CLOSED = "CLOSED"


@dataclass
class TrackingSession:
    """State of one simulated position. Mutated only by its own polling task."""

    id: str
    token: str
    quote_mint: str
    base_vault: str
    quote_vault: str
    inverted: bool = False
    start_time: float = field(default_factory=time.time)
    state: str = OPEN

    # ── Price tracking ──────────────────────────────────────
    initial_price: float = 0.0
    current_price: float = 0.0
    max_price: float = 0.0
    liquidity: float = 0.0        # quote-side vault amount, latest tick
    entry_liquidity: float = 0.0  # quote-side vault amount at entry
    entry_time: float = 0.0
    pnl_pct: float = 0.0
    max_pnl_pct: float = 0.0
    ticks: int = 0
    policy_state: object = None

    # ── Exit ────────────────────────────────────────────────
    exit_price: float = 0.0
    exit_reason: str = ""
    realized_pnl_pct: float = 0.0
    realized_pnl: float = 0.0
    closed_at: float = 0.0

    close_signal: asyncio.Event = field(default_factory=asyncio.Event, repr=False, compare=False)

    @property
    def is_open(self) -> bool:
        return self.state == OPEN

    @property
    def priced(self) -> bool:
        return self.initial_price > 0

    @property
    def elapsed_seconds(self) -> float:
        end = self.closed_at if self.closed_at else time.time()
        return end - self.start_time

    def record_price(self, price: float, liquidity: float):
        """Apply one priced tick. The first price fixes the PnL baseline."""
        if not self.priced:
            self.initial_price = price
            self.max_price = price
            self.entry_liquidity = liquidity
            self.entry_time = time.time()
        self.current_price = price
        self.liquidity = liquidity
        self.max_price = max(self.max_price, price)
        self.pnl_pct = (price - self.initial_price) / self.initial_price * 100
        self.max_pnl_pct = (self.max_price - self.initial_price) / self.initial_price * 100
        self.ticks += 1

    def close(self, reason: str, investment: float) -> bool:
        """Transition to CLOSED. Returns False if it already was."""
        if not self.is_open:
            return False
        self.state = CLOSED
        self.exit_reason = reason
        self.exit_price = self.current_price
        self.realized_pnl_pct = self.pnl_pct if self.priced else 0.0
        self.realized_pnl = investment * self.realized_pnl_pct / 100
        self.closed_at = time.time()
        self.close_signal.set()
        return True


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only copy of a session for rendering."""

    id: str
    token: str
    state: str
    entry_price: float
    current_price: float
    max_price: float
    elapsed_seconds: float
    pnl_pct: float
    max_pnl_pct: float
    liquidity: float
    exit_reason: str
    realized_pnl: float

    @classmethod
    def of(cls, session: TrackingSession) -> "SessionSnapshot":
        return cls(
            id=session.id,
            token=session.token,
            state=session.state,
            entry_price=session.initial_price,
            current_price=session.current_price,
            max_price=session.max_price,
            elapsed_seconds=session.elapsed_seconds,
            pnl_pct=session.pnl_pct,
            max_pnl_pct=session.max_pnl_pct,
            liquidity=session.liquidity,
            exit_reason=session.exit_reason,
            realized_pnl=session.realized_pnl,
        )


class SessionManager:
    """
    Registry of concurrent paper-trading sessions.

    Structural changes (insert / remove) go through one asyncio.Lock. Field
    updates inside a session are owned by that session's task only.
    """

    def __init__(
        self,
        rpc,
        policy,
        investment: float = 1.0,
        poll_interval: float = 2.0,
        idle_interval: float = 1.0,
        error_backoff: float = 5.0,
        max_sessions: int = 0,
        on_close=None,
    ):
        self.rpc = rpc
        self.policy = policy
        self.investment = investment
        self.poll_interval = poll_interval
        self.idle_interval = idle_interval
        self.error_backoff = error_backoff
        self.max_sessions = max_sessions
        self._on_close = on_close  # async callback(session)
        self._sessions: dict[str, TrackingSession] = {}
        self._tasks: dict[str, asyncio.Task] = {}
        self._lock = asyncio.Lock()
        self._ids = itertools.count(1)
        self._telemetry_task: asyncio.Task | None = None
        # Stats
        self.total_started: int = 0
        self.total_closed: int = 0
        self.realized_total: float = 0.0
        self._exit_reasons: dict[str, int] = {}

    # ── Registry ────────────────────────────────────────────

    async def start_tracking(self, pool) -> TrackingSession | None:
        """Register an OPEN session for a ClassifiedPool and launch its loop. Does not wait on it."""
        async with self._lock:
            if self.max_sessions and self.open_count >= self.max_sessions:
                logger.info(
                    f"[skip] {pool.base_mint[:8]}... session cap reached ({self.max_sessions})"
                )
                return None

            session_id = f"{next(self._ids):04d}"
            session = TrackingSession(
                id=session_id,
                token=pool.base_mint,
                quote_mint=pool.quote_mint,
                base_vault=pool.base_vault,
                quote_vault=pool.quote_vault,
                inverted=pool.inverted,
                policy_state=self.policy.new_state(),
            )
            self._sessions[session_id] = session
            self.total_started += 1
            task = asyncio.create_task(self._run(session), name=f"session-{session_id}")
            self._tasks[session_id] = task

        task.add_done_callback(lambda _t, sid=session_id: self._tasks.pop(sid, None))
        logger.info(
            f"[open] #{session_id} {session.token} | policy={self.policy.describe()} | "
            f"base_vault={session.base_vault[:8]}... quote_vault={session.quote_vault[:8]}..."
        )
        return session

    async def stop(self, session_id: str | None = None):
        """
        Close one session, or all of them (and the telemetry task) when no id
        is given. Stopped sessions leave the registry immediately. Idempotent.
        """
        async with self._lock:
            if session_id is None:
                targets = list(self._sessions.values())
                self._sessions.clear()
            else:
                session = self._sessions.pop(session_id, None)
                targets = [session] if session else []

        for session in targets:
            session.close(MANUAL_STOP, self.investment)

        if session_id is None and self._telemetry_task is not None:
            self._telemetry_task.cancel()
            self._telemetry_task = None

    async def snapshot(self) -> list[SessionSnapshot]:
        """
        Copies of every registered session. A CLOSED session is dropped from
        the registry once it has shown up in a snapshot.
        """
        async with self._lock:
            snaps = [SessionSnapshot.of(s) for s in self._sessions.values()]
            for snap in snaps:
                if snap.state == CLOSED:
                    self._sessions.pop(snap.id, None)
        return snaps

    def get(self, session_id: str) -> TrackingSession | None:
        return self._sessions.get(session_id)

    @property
    def open_count(self) -> int:
        return sum(1 for s in self._sessions.values() if s.is_open)

    async def join(self, timeout: float | None = None):
        """Wait for running session tasks to finish."""
        tasks = list(self._tasks.values())
        if tasks:
            await asyncio.wait(tasks, timeout=timeout)

    # ── Telemetry ───────────────────────────────────────────

    def start_telemetry(self, sink, interval: float = 1.0) -> asyncio.Task:
        self._telemetry_task = asyncio.create_task(
            self._telemetry_loop(sink, interval), name="telemetry"
        )
        return self._telemetry_task

    async def _telemetry_loop(self, sink, interval: float):
        while True:
            try:
                sink.render(await self.snapshot())
            except Exception as e:
                logger.error(f"Telemetry render error: {e}")
            await asyncio.sleep(interval)

    # ── Per-session loop ────────────────────────────────────

    async def _run(self, session: TrackingSession):
        try:
            while session.is_open:
                try:
                    delay = await self._tick(session)
                except Exception as e:
                    logger.warning(
                        f"[recoverable] #{session.id} balance query failed: {e} "
                        f"(retry in {self.error_backoff}s)"
                    )
                    delay = self.error_backoff
                if session.is_open:
                    await self._sleep(session, delay)
        except asyncio.CancelledError:
            session.close(MANUAL_STOP, self.investment)
            raise
        finally:
            await self._finish(session)

    async def _tick(self, session: TrackingSession) -> float:
        """One poll. Returns the delay before the next tick."""
        base_amount, quote_amount = await asyncio.gather(
            self.rpc.get_token_account_balance(session.base_vault),
            self.rpc.get_token_account_balance(session.quote_vault),
        )
        if not session.is_open:
            return 0.0

        if base_amount is None or quote_amount is None:
            logger.debug(f"#{session.id} waiting for liquidity...")
            return self.idle_interval

        # inverted: base vault holds the quote asset
        if session.inverted:
            sol_amount, token_amount = base_amount, quote_amount
        else:
            sol_amount, token_amount = quote_amount, base_amount

        if sol_amount == 0 or token_amount == 0:
            return self.idle_interval

        first = not session.priced
        session.record_price(sol_amount / token_amount, sol_amount)

        if first:
            logger.info(
                f"[entry] #{session.id} {session.token[:8]}... simulated buy "
                f"@ {session.initial_price:.9f} | liq={sol_amount:,.2f}"
            )
        logger.debug(
            f"#{session.id} {session.elapsed_seconds:.1f}s | price={session.current_price:.9f} "
            f"| pnl={session.pnl_pct:+.2f}% | max={session.max_pnl_pct:+.2f}%"
        )

        reason = self.policy.evaluate(session.pnl_pct, session.policy_state)
        if reason is not None:
            session.close(reason, self.investment)
            return 0.0
        return self.poll_interval

    async def _sleep(self, session: TrackingSession, seconds: float):
        """Sleep between ticks; a stop request wakes it early."""
        try:
            await asyncio.wait_for(session.close_signal.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    async def _finish(self, session: TrackingSession):
        self.total_closed += 1
        self.realized_total += session.realized_pnl
        self._exit_reasons[session.exit_reason] = (
            self._exit_reasons.get(session.exit_reason, 0) + 1
        )
        logger.info(
            f"[close] #{session.id} {session.token[:8]}... {session.exit_reason} "
            f"| exit={session.exit_price:.9f} pnl={session.realized_pnl_pct:+.2f}% "
            f"({session.realized_pnl:+.4f}) max={session.max_pnl_pct:+.2f}% "
            f"| {session.elapsed_seconds:.0f}s"
        )
        # Nobody will observe it: drop now
        if self._telemetry_task is None:
            async with self._lock:
                if self._sessions.get(session.id) is session:
                    del self._sessions[session.id]
        if self._on_close:
            try:
                await self._on_close(session)
            except Exception as e:
                logger.debug(f"Close callback error: {e}")

    def get_stats(self) -> dict:
        return {
            "open": self.open_count,
            "started": self.total_started,
            "closed": self.total_closed,
            "realized_total": self.realized_total,
            "exit_reasons": dict(self._exit_reasons),
        }
