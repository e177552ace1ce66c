"""
Personal Telegram Bot notifications for detections and paper trades.

Uses the standard Telegram Bot API (HTTP) via aiohttp.
Setup:
  1. Message @BotFather on Telegram → /newbot → get BOT_TOKEN
  2. Message @userinfobot → get your CHAT_ID
  3. Set BOT_TOKEN and BOT_CHAT_ID in .env

Without both values the notifier stays disabled and messages are dropped
(every event is still logged to the console).
"""
import asyncio
import logging

import aiohttp

logger = logging.getLogger("tg_bot")

DEXSCREENER_URL = "https://dexscreener.com/solana/{}"

REASON_EMOJI = {
    "take-profit": "🟢",
    "stop-loss": "🔴",
    "breakeven-exit": "🟡",
    "manual-stop": "⏹",
}


def _keyboard(token: str) -> dict:
    return {
        "inline_keyboard": [
            [
                {"text": "📊 DexScreener", "url": DEXSCREENER_URL.format(token)},
                {"text": "🔍 Solscan", "url": f"https://solscan.io/token/{token}"},
            ],
        ]
    }


def format_pool_message(event, pool) -> str:
    return (
        f"🚀 <b>NEW POOL</b>\n"
        f"{'━' * 28}\n\n"
        f"<code>{pool.base_mint}</code>\n\n"
        f"├ Quote: <code>{pool.quote_mint[:8]}...</code>\n"
        f"├ Base vault: <code>{pool.base_vault[:8]}...</code>\n"
        f"├ Quote vault: <code>{pool.quote_vault[:8]}...</code>\n"
        f"└ Tx: <code>{event.signature[:16]}...</code>"
    )


def format_open_message(session, policy_desc: str) -> str:
    return (
        f"📜 <b>PAPER TRADE #{session.id}</b>\n\n"
        f"<code>{session.token}</code>\n"
        f"└ Policy: {policy_desc}"
    )


def format_close_message(session) -> str:
    emoji = REASON_EMOJI.get(session.exit_reason, "❓")
    return (
        f"{emoji} <b>CLOSED #{session.id}: {session.exit_reason}</b>\n\n"
        f"<code>{session.token}</code>\n"
        f"├ Entry: {session.initial_price:.9f}\n"
        f"├ Exit: {session.exit_price:.9f}\n"
        f"├ PnL: <b>{session.realized_pnl_pct:+.2f}%</b> ({session.realized_pnl:+.4f})\n"
        f"├ Max: {session.max_pnl_pct:+.2f}%\n"
        f"└ Held: {session.elapsed_seconds:.0f}s"
    )


class TelegramNotifier:
    """Queues formatted alerts and delivers them through the Bot API."""

    def __init__(self, bot_token: str = "", chat_id: str = ""):
        self._bot_token = bot_token
        self._chat_id = chat_id
        self._api_base = f"https://api.telegram.org/bot{bot_token}"
        self._session: aiohttp.ClientSession | None = None
        self.queue: asyncio.Queue[tuple[str, dict | None]] = asyncio.Queue()

    @property
    def enabled(self) -> bool:
        return bool(self._bot_token and self._chat_id)

    async def _ensure_session(self):
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=10)
            )

    # ── Producers (called by the pipeline) ──────────────────

    def notify_pool(self, event, pool):
        self._enqueue(format_pool_message(event, pool), _keyboard(pool.base_mint))

    def notify_open(self, session, policy_desc: str):
        self._enqueue(format_open_message(session, policy_desc))

    def notify_close(self, session):
        self._enqueue(format_close_message(session), _keyboard(session.token))

    def _enqueue(self, text: str, reply_markup: dict | None = None):
        if self.enabled:
            self.queue.put_nowait((text, reply_markup))

    # ── Consumer ────────────────────────────────────────────

    async def start(self):
        """Verify bot token, then deliver queued messages."""
        if not self.enabled:
            logger.warning(
                "BOT_TOKEN or BOT_CHAT_ID not set — Telegram notifications disabled"
            )
            return

        await self._ensure_session()
        try:
            async with self._session.get(f"{self._api_base}/getMe") as resp:
                if resp.status != 200:
                    logger.error(f"Bot token invalid (HTTP {resp.status}). Check BOT_TOKEN in .env")
                    return
                data = await resp.json()
                logger.info(f"Telegram bot connected: @{data.get('result', {}).get('username', 'unknown')}")
        except Exception as e:
            logger.error(f"Failed to connect bot: {e}")
            return

        await self._send_message("🟢 <b>Pool Watcher Online</b>")
        await self._send_loop()

    async def _send_loop(self):
        while True:
            try:
                text, reply_markup = await self.queue.get()
                await self._send_message(text, reply_markup=reply_markup)
                self.queue.task_done()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Bot send loop error: {e}")
                await asyncio.sleep(1)

    async def _send_message(self, text: str, reply_markup: dict | None = None):
        """Send a message via Telegram Bot API."""
        await self._ensure_session()
        try:
            payload: dict = {
                "chat_id": self._chat_id,
                "text": text,
                "parse_mode": "HTML",
                "disable_web_page_preview": True,
            }
            if reply_markup:
                payload["reply_markup"] = reply_markup
            async with self._session.post(
                f"{self._api_base}/sendMessage",
                json=payload,
            ) as resp:
                if resp.status != 200:
                    data = await resp.json()
                    logger.error(f"Bot send failed: {data}")
        except Exception as e:
            logger.error(f"Bot send error: {e}")

    async def stop(self):
        """Send offline message and close session."""
        if self.enabled and self._session and not self._session.closed:
            await self._send_message("🔴 <b>Pool Watcher Offline</b>")
        if self._session and not self._session.closed:
            await self._session.close()
