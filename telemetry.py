"""
Console dashboard for running paper-trading sessions.

Rendered from SessionManager snapshots every TELEMETRY_INTERVAL_S. OPEN
sessions get one table row each; a CLOSED session is printed once as a
summary line (the manager drops it after that snapshot).
"""
import logging
import sys

from paper_trader import CLOSED, OPEN

logger = logging.getLogger("telemetry")

COLUMNS = (
    ("#", 5),
    ("token", 12),
    ("entry", 14),
    ("price", 14),
    ("max", 14),
    ("age", 7),
    ("pnl", 9),
    ("max pnl", 9),
    ("liq", 12),
)


def format_row(snap) -> str:
    cells = (
        snap.id,
        snap.token[:10] + "..",
        f"{snap.entry_price:.9f}",
        f"{snap.current_price:.9f}",
        f"{snap.max_price:.9f}",
        f"{snap.elapsed_seconds:.0f}s",
        f"{snap.pnl_pct:+.2f}%",
        f"{snap.max_pnl_pct:+.2f}%",
        f"{snap.liquidity:,.2f}",
    )
    return " ".join(str(c).rjust(w) for c, (_, w) in zip(cells, COLUMNS))


def format_table(snapshots) -> str:
    rows = [s for s in snapshots if s.state == OPEN]
    header = " ".join(name.rjust(w) for name, w in COLUMNS)
    width = len(header)
    lines = [
        "═" * width,
        f"  PAPER TRADES  open={len(rows)}",
        header,
        "─" * width,
    ]
    lines.extend(format_row(s) for s in rows)
    lines.append("═" * width)
    return "\n".join(lines)


def format_close(snap) -> str:
    return (
        f"  ✖ #{snap.id} {snap.token} closed ({snap.exit_reason}) "
        f"pnl={snap.pnl_pct:+.2f}% realized={snap.realized_pnl:+.4f} "
        f"max={snap.max_pnl_pct:+.2f}% after {snap.elapsed_seconds:.0f}s"
    )


class ConsoleDashboard:
    """Telemetry sink writing to a text stream (stdout by default)."""

    def __init__(self, stream=None, show_empty: bool = False):
        self.stream = stream or sys.stdout
        self.show_empty = show_empty
        self.renders: int = 0

    def render(self, snapshots):
        closed = [s for s in snapshots if s.state == CLOSED]
        has_open = any(s.state == OPEN for s in snapshots)

        out = [format_close(s) for s in closed]
        if has_open or self.show_empty:
            out.append(format_table(snapshots))
        if not out:
            return

        self.stream.write("\n".join(out) + "\n")
        self.stream.flush()
        self.renders += 1
