"""
Tests for the console dashboard and Telegram message formatting.
Run: python3 test_telemetry.py
"""
import asyncio
import io
import sys

# Ensure project root is on path
sys.path.insert(0, ".")

from clmm.classifier import ClassifiedPool
from clmm.constants import WSOL
from clmm.listener import RawCreationEvent
from notifier import TelegramNotifier, format_close_message, format_pool_message
from paper_trader import CLOSED, OPEN, SessionSnapshot, TrackingSession
from telemetry import ConsoleDashboard, format_table


def make_snap(id="0001", state=OPEN, **overrides):
    fields = dict(
        id=id,
        token="T0kenMint111111111111111111111111111111111",
        state=state,
        entry_price=0.0001,
        current_price=0.00012,
        max_price=0.00013,
        elapsed_seconds=42.0,
        pnl_pct=20.0,
        max_pnl_pct=30.0,
        liquidity=120.0,
        exit_reason="" if state == OPEN else "take-profit",
        realized_pnl=0.0 if state == OPEN else 0.2,
    )
    fields.update(overrides)
    return SessionSnapshot(**fields)


def test_table_lists_open_sessions_only():
    text = format_table([make_snap("0001"), make_snap("0002", state=CLOSED)])
    assert "open=1" in text
    assert "0001" in text
    assert "0002" not in text
    assert "+20.00%" in text and "+30.00%" in text
    assert "0.000120000" in text


def test_dashboard_prints_close_summary():
    out = io.StringIO()
    dash = ConsoleDashboard(stream=out)
    dash.render([make_snap("0002", state=CLOSED)])
    text = out.getvalue()
    assert "#0002" in text and "take-profit" in text
    assert "PAPER TRADES" not in text, "no table without open sessions"


def test_dashboard_silent_when_empty():
    out = io.StringIO()
    dash = ConsoleDashboard(stream=out)
    dash.render([])
    assert out.getvalue() == ""
    assert dash.renders == 0


def test_pool_message():
    pool = ClassifiedPool(base_mint="T0ken", quote_mint=WSOL, base_vault="bv111111", quote_vault="qv111111")
    text = format_pool_message(RawCreationEvent("sigsigsigsigsigsigsig"), pool)
    assert "<code>T0ken</code>" in text
    assert "sigsigsigsigsigs..." in text


def test_close_message():
    session = TrackingSession(
        id="0007", token="T0ken", quote_mint=WSOL, base_vault="bv", quote_vault="qv",
    )
    session.record_price(1.0, 10.0)
    session.record_price(1.1, 11.0)
    session.close("take-profit", investment=2.0)
    text = format_close_message(session)
    assert "CLOSED #0007: take-profit" in text
    assert "+10.00%" in text
    assert "+0.2000" in text


def test_disabled_notifier_drops_messages():
    async def scenario():
        notifier = TelegramNotifier()
        assert notifier.enabled is False
        pool = ClassifiedPool(base_mint="T0ken", quote_mint=WSOL, base_vault="bv", quote_vault="qv")
        notifier.notify_pool(RawCreationEvent("sig"), pool)
        assert notifier.queue.empty()
        await notifier.start()  # returns immediately when disabled
        await notifier.stop()
    asyncio.run(scenario())


def test_enabled_notifier_queues_messages():
    async def scenario():
        notifier = TelegramNotifier("123:abc", "42")
        pool = ClassifiedPool(base_mint="T0ken", quote_mint=WSOL, base_vault="bv", quote_vault="qv")
        notifier.notify_pool(RawCreationEvent("sig"), pool)
        text, markup = notifier.queue.get_nowait()
        assert "NEW POOL" in text
        assert markup["inline_keyboard"][0][0]["url"].endswith("/T0ken")
    asyncio.run(scenario())


# ══════════════════════════════════════════════════════════════
#  RUN ALL TESTS
# ══════════════════════════════════════════════════════════════

if __name__ == "__main__":
    passed = 0
    failed = 0
    tests = [(name, fn) for name, fn in sorted(globals().items()) if name.startswith("test_") and callable(fn)]
    print("\n── Telemetry Tests ──")
    for name, fn in tests:
        try:
            fn()
            print(f"  PASS  {name[5:]}")
            passed += 1
        except Exception as e:
            print(f"  FAIL  {name[5:]}: {e!r}")
            failed += 1

    print(f"\n{'='*50}")
    print(f"Results: {passed} passed, {failed} failed out of {passed + failed}")
    if failed:
        sys.exit(1)
    else:
        print("All tests passed!")
