"""
Configuration loader — reads .env and exposes all settings.
"""
import os
from dotenv import load_dotenv

from clmm.constants import DEFAULT_QUOTE_MINTS

load_dotenv()


# ── Solana RPC ─────────────────────────────────────────────────
# Helius / Triton recommended. Public endpoint is rate limited and slow to
# serve fresh transactions.
RPC_ENDPOINT = os.getenv("RPC_ENDPOINT", "https://api.mainnet-beta.solana.com")
RPC_WEBSOCKET_ENDPOINT = os.getenv("RPC_WEBSOCKET_ENDPOINT", "wss://api.mainnet-beta.solana.com")
# Minimum spacing between HTTP RPC calls (0 = unthrottled)
RPC_MIN_INTERVAL_S = float(os.getenv("RPC_MIN_INTERVAL_S", "0"))

# ── Detection ──────────────────────────────────────────────────
# "clmm" (Raydium concentrated liquidity) or "cpmm" (Raydium constant product)
TARGET_PROGRAM = os.getenv("TARGET_PROGRAM", "clmm").lower()
# Mints that count as the pricing side of a pool (comma separated)
QUOTE_MINTS = frozenset(
    m.strip() for m in os.getenv("QUOTE_MINTS", ",".join(sorted(DEFAULT_QUOTE_MINTS))).split(",")
    if m.strip()
)
# getTransaction retries while the node has not indexed the tx yet
TX_FETCH_ATTEMPTS = int(os.getenv("TX_FETCH_ATTEMPTS", "5"))
TX_FETCH_RETRY_DELAY_S = float(os.getenv("TX_FETCH_RETRY_DELAY_S", "0.5"))

# ── Paper trading ──────────────────────────────────────────────
# "monitor" (never exits), "fixed" (TP/SL) or "breakeven" (SL moves to entry)
EXIT_POLICY = os.getenv("EXIT_POLICY", "breakeven").lower()
TAKE_PROFIT_PCT = float(os.getenv("TAKE_PROFIT_PCT", "10"))
STOP_LOSS_PCT = float(os.getenv("STOP_LOSS_PCT", "5"))
BREAKEVEN_TRIGGER_PCT = float(os.getenv("BREAKEVEN_TRIGGER_PCT", "5"))
# Simulated position size in quote units (SOL)
INVESTMENT_SOL = float(os.getenv("INVESTMENT_SOL", "1.0"))
# Tick cadence: 0.1 for scalping, 1-2 for monitoring
POLL_INTERVAL_S = float(os.getenv("POLL_INTERVAL_S", "2.0"))
# Wait while a vault reports no amount yet
IDLE_INTERVAL_S = float(os.getenv("IDLE_INTERVAL_S", "1.0"))
# Backoff after a failed balance query
ERROR_BACKOFF_S = float(os.getenv("ERROR_BACKOFF_S", "5.0"))
# 0 = unlimited concurrent sessions
MAX_CONCURRENT_SESSIONS = int(os.getenv("MAX_CONCURRENT_SESSIONS", "0"))

# ── Telemetry ──────────────────────────────────────────────────
TELEMETRY_ENABLED = os.getenv("TELEMETRY_ENABLED", "true").lower() == "true"
TELEMETRY_INTERVAL_S = float(os.getenv("TELEMETRY_INTERVAL_S", "1.0"))
STATS_INTERVAL_S = float(os.getenv("STATS_INTERVAL_S", "300"))

# ── Personal Telegram Bot (Bot API) ────────────────────────────
# Create via @BotFather, get your chat_id from @userinfobot
BOT_TOKEN = os.getenv("BOT_TOKEN", "")
BOT_CHAT_ID = os.getenv("BOT_CHAT_ID", "")

# ── Logging ────────────────────────────────────────────────────
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
