"""
Raydium Pool Watcher — Main Orchestrator.

Detects new Raydium pools on Solana as they are created, pulls the
token / quote mints and vaults straight from the creation transaction,
and paper-trades every new token by polling the pool vaults.

Usage:
    python main.py                      # reads .env
    EXIT_POLICY=fixed python main.py    # fixed TP/SL instead of breakeven
"""
import asyncio
import logging
import signal as signal_module
import sys

import config
from clmm.listener import TARGETS, PoolCreationListener
from clmm.rpc import SolanaRpcClient
from exit_policy import build_policy
from notifier import TelegramNotifier
from paper_trader import SessionManager
from telemetry import ConsoleDashboard

# ── Logging ──
logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    format="%(asctime)s | %(name)-14s | %(levelname)-5s | %(message)s",
    datefmt="%H:%M:%S",
    stream=sys.stdout,
)
logger = logging.getLogger("main")
logging.getLogger("asyncio").setLevel(logging.WARNING)
logging.getLogger("aiohttp").setLevel(logging.WARNING)


class PoolWatcher:
    """Main application — wires up all components and runs them concurrently."""

    def __init__(self):
        self.target = TARGETS[config.TARGET_PROGRAM]
        self.policy = build_policy(
            config.EXIT_POLICY,
            take_profit_pct=config.TAKE_PROFIT_PCT,
            stop_loss_pct=config.STOP_LOSS_PCT,
            breakeven_trigger_pct=config.BREAKEVEN_TRIGGER_PCT,
        )
        self.rpc = SolanaRpcClient(config.RPC_ENDPOINT, min_interval=config.RPC_MIN_INTERVAL_S)
        self.notifier = TelegramNotifier(config.BOT_TOKEN, config.BOT_CHAT_ID)
        self.sessions = SessionManager(
            rpc=self.rpc,
            policy=self.policy,
            investment=config.INVESTMENT_SOL,
            poll_interval=config.POLL_INTERVAL_S,
            idle_interval=config.IDLE_INTERVAL_S,
            error_backoff=config.ERROR_BACKOFF_S,
            max_sessions=config.MAX_CONCURRENT_SESSIONS,
            on_close=self._on_session_close,
        )
        self.listener = PoolCreationListener(
            wss_url=config.RPC_WEBSOCKET_ENDPOINT,
            rpc=self.rpc,
            target=self.target,
            quote_mints=config.QUOTE_MINTS,
            on_pool=self._on_pool,
            fetch_attempts=config.TX_FETCH_ATTEMPTS,
            fetch_retry_delay=config.TX_FETCH_RETRY_DELAY_S,
        )

    async def start(self):
        logger.info("=" * 60)
        logger.info("  RAYDIUM POOL WATCHER (paper trading)")
        logger.info(f"  Program:    {self.target.name} {self.target.program_id}")
        logger.info(f"  Layout:     {self.target.layout.name}")
        logger.info(f"  Policy:     {self.policy.describe()}")
        logger.info(f"  Size:       {config.INVESTMENT_SOL} SOL / trade")
        logger.info(f"  Poll:       {config.POLL_INTERVAL_S}s")
        logger.info(f"  Quotes:     {len(config.QUOTE_MINTS)} mint(s)")
        logger.info("=" * 60)

        if config.TELEMETRY_ENABLED:
            self.sessions.start_telemetry(ConsoleDashboard(), config.TELEMETRY_INTERVAL_S)

        tasks = [
            asyncio.create_task(self.listener.start(), name="pool_listener"),
            asyncio.create_task(self.notifier.start(), name="notifier"),
            asyncio.create_task(self._stats_loop(), name="stats"),
        ]
        logger.info("All systems running. Waiting for new pools...")

        try:
            done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()

        for task in done:
            if not task.cancelled() and task.exception():
                logger.error(f"Task {task.get_name()} crashed: {task.exception()}")
                # Listener failing at startup: nothing can be detected
                if task.get_name() == "pool_listener":
                    raise task.exception()

    async def _on_pool(self, event, pool):
        """Listener callback: a classified pool is ready to trade."""
        self.notifier.notify_pool(event, pool)
        session = await self.sessions.start_tracking(pool)
        if session is not None:
            self.notifier.notify_open(session, self.policy.describe())

    async def _on_session_close(self, session):
        self.notifier.notify_close(session)

    async def _stats_loop(self):
        while True:
            await asyncio.sleep(config.STATS_INTERVAL_S)
            stats = self.sessions.get_stats()
            logger.info(
                f"[stats] creations={self.listener.creations_seen} "
                f"detected={self.listener.pools_detected} "
                f"skipped={self.listener.pools_skipped} "
                f"fetch_failed={self.listener.fetch_failures} | "
                f"open={stats['open']} started={stats['started']} "
                f"closed={stats['closed']} realized={stats['realized_total']:+.4f} SOL"
            )
            if stats["exit_reasons"]:
                logger.info(f"[stats] exits: {stats['exit_reasons']}")

    async def shutdown(self):
        logger.info("Shutting down...")
        await self.listener.stop()
        await self.sessions.stop()
        await self.sessions.join(timeout=5)
        await self.notifier.stop()
        await self.rpc.close()
        stats = self.sessions.get_stats()
        logger.info(
            f"Sessions: {stats['started']} started, {stats['closed']} closed, "
            f"realized {stats['realized_total']:+.4f} SOL"
        )
        logger.info("Goodbye.")


async def main():
    watcher = PoolWatcher()
    loop = asyncio.get_running_loop()
    main_task = asyncio.current_task()
    for sig in (signal_module.SIGINT, signal_module.SIGTERM):
        loop.add_signal_handler(sig, main_task.cancel)
    try:
        await watcher.start()
    except asyncio.CancelledError:
        pass
    finally:
        await watcher.shutdown()


def run():
    asyncio.run(main())


if __name__ == "__main__":
    run()
