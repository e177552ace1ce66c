"""
Exit policies for paper-trading sessions.

One policy object is shared by every session created with it; anything that
changes during a session lives in the per-session state returned by
new_state(). evaluate() is called once per priced tick with the current PnL
percent and returns an exit reason, or None to stay open.

    monitor    never exits, the session runs until stopped
    fixed      take-profit / stop-loss at fixed percentages
    breakeven  stop starts at -initial_stop_loss and moves to entry (0%)
               once PnL reaches the trigger
"""
from dataclasses import dataclass

TAKE_PROFIT = "take-profit"
STOP_LOSS = "stop-loss"
BREAKEVEN_EXIT = "breakeven-exit"
MANUAL_STOP = "manual-stop"

# Floating-point noise band around the breakeven stop (percentage points)
BREAKEVEN_EPSILON = 0.01


@dataclass
class BreakevenState:
    stop_level: float
    armed: bool = False

    def arm(self):
        # Tighten only: the stop never moves back below entry
        self.armed = True
        self.stop_level = max(self.stop_level, 0.0)


@dataclass(frozen=True)
class MonitorPolicy:
    kind: str = "monitor"

    def new_state(self):
        return None

    def evaluate(self, pnl_pct: float, state) -> str | None:
        return None

    def describe(self) -> str:
        return "monitor (no exit)"


@dataclass(frozen=True)
class FixedPolicy:
    take_profit_pct: float
    stop_loss_pct: float
    kind: str = "fixed"

    def new_state(self):
        return None

    def evaluate(self, pnl_pct: float, state) -> str | None:
        if pnl_pct >= self.take_profit_pct:
            return TAKE_PROFIT
        if pnl_pct <= -self.stop_loss_pct:
            return STOP_LOSS
        return None

    def describe(self) -> str:
        return f"fixed TP +{self.take_profit_pct:g}% / SL -{self.stop_loss_pct:g}%"


@dataclass(frozen=True)
class BreakevenPolicy:
    take_profit_pct: float
    initial_stop_loss_pct: float
    breakeven_trigger_pct: float
    epsilon: float = BREAKEVEN_EPSILON
    kind: str = "breakeven"

    def new_state(self) -> BreakevenState:
        return BreakevenState(stop_level=-self.initial_stop_loss_pct)

    def evaluate(self, pnl_pct: float, state: BreakevenState) -> str | None:
        if not state.armed and pnl_pct >= self.breakeven_trigger_pct:
            state.arm()

        if pnl_pct >= self.take_profit_pct:
            return TAKE_PROFIT
        if pnl_pct < state.stop_level - self.epsilon:
            return BREAKEVEN_EXIT if state.armed else STOP_LOSS
        return None

    def describe(self) -> str:
        return (
            f"breakeven TP +{self.take_profit_pct:g}% / SL -{self.initial_stop_loss_pct:g}% "
            f"/ arm at +{self.breakeven_trigger_pct:g}%"
        )


def build_policy(
    kind: str,
    take_profit_pct: float = 10.0,
    stop_loss_pct: float = 5.0,
    breakeven_trigger_pct: float = 5.0,
):
    kind = kind.strip().lower()
    if kind == "monitor":
        return MonitorPolicy()
    if kind == "fixed":
        return FixedPolicy(take_profit_pct=take_profit_pct, stop_loss_pct=stop_loss_pct)
    if kind == "breakeven":
        return BreakevenPolicy(
            take_profit_pct=take_profit_pct,
            initial_stop_loss_pct=stop_loss_pct,
            breakeven_trigger_pct=breakeven_trigger_pct,
        )
    raise ValueError(f"Unknown exit policy {kind!r} (monitor, fixed, breakeven)")
