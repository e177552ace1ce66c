"""
Tests for exit policies (monitor / fixed / breakeven).
Run: python3 test_exit_policy.py
"""
import sys

# Ensure project root is on path
sys.path.insert(0, ".")

from exit_policy import (
    BREAKEVEN_EXIT,
    STOP_LOSS,
    TAKE_PROFIT,
    BreakevenPolicy,
    FixedPolicy,
    MonitorPolicy,
    build_policy,
)


def feed(policy, pnls):
    """Evaluate a PnL sequence. Returns (tick index, reason, state) of the first exit."""
    state = policy.new_state()
    for i, pnl in enumerate(pnls):
        reason = policy.evaluate(pnl, state)
        if reason is not None:
            return i, reason, state
    return None, None, state


def test_fixed_take_profit():
    policy = FixedPolicy(take_profit_pct=5, stop_loss_pct=10)
    tick, reason, _ = feed(policy, [0.0, 1.2, 4.9, 5.2, 8.0])
    assert (tick, reason) == (3, TAKE_PROFIT)


def test_fixed_take_profit_inclusive():
    policy = FixedPolicy(take_profit_pct=5, stop_loss_pct=10)
    assert policy.evaluate(5.0, None) == TAKE_PROFIT


def test_fixed_stop_loss_inclusive():
    policy = FixedPolicy(take_profit_pct=5, stop_loss_pct=10)
    assert policy.evaluate(-9.99, None) is None
    assert policy.evaluate(-10.0, None) == STOP_LOSS


def test_breakeven_scenario():
    policy = BreakevenPolicy(take_profit_pct=10, initial_stop_loss_pct=5, breakeven_trigger_pct=5)
    state = policy.new_state()
    assert state.stop_level == -5
    assert policy.evaluate(2.0, state) is None
    assert state.armed is False
    assert policy.evaluate(5.5, state) is None
    assert state.armed is True, "should arm at pnl 5.5 >= trigger 5"
    assert state.stop_level == 0
    assert policy.evaluate(3.9, state) is None, "3.9 is above the breakeven stop"
    assert policy.evaluate(-0.2, state) == BREAKEVEN_EXIT


def test_breakeven_epsilon_band():
    policy = BreakevenPolicy(take_profit_pct=10, initial_stop_loss_pct=5, breakeven_trigger_pct=5)
    state = policy.new_state()
    policy.evaluate(6.0, state)
    assert policy.evaluate(0.0, state) is None
    assert policy.evaluate(-0.005, state) is None, "float noise at entry must not exit"
    assert policy.evaluate(-0.02, state) == BREAKEVEN_EXIT


def test_breakeven_unarmed_stop_loss():
    policy = BreakevenPolicy(take_profit_pct=10, initial_stop_loss_pct=5, breakeven_trigger_pct=5)
    tick, reason, state = feed(policy, [1.0, -3.0, -5.0, -5.2])
    assert (tick, reason) == (3, STOP_LOSS)
    assert state.armed is False


def test_breakeven_take_profit():
    policy = BreakevenPolicy(take_profit_pct=10, initial_stop_loss_pct=5, breakeven_trigger_pct=5)
    tick, reason, state = feed(policy, [3.0, 7.0, 10.0])
    assert (tick, reason) == (2, TAKE_PROFIT)
    assert state.armed is True


def test_breakeven_stop_never_relaxes():
    policy = BreakevenPolicy(take_profit_pct=50, initial_stop_loss_pct=5, breakeven_trigger_pct=5)
    state = policy.new_state()
    levels = []
    for pnl in [1.0, 6.0, 2.0, 20.0, 0.5, 4.9, 5.1, 0.0]:
        policy.evaluate(pnl, state)
        if state.armed:
            levels.append(state.stop_level)
    assert levels and all(level == 0 for level in levels)
    # arming again cannot loosen the stop
    state.arm()
    assert state.stop_level == 0


def test_trigger_above_take_profit_still_exits():
    policy = BreakevenPolicy(take_profit_pct=3, initial_stop_loss_pct=5, breakeven_trigger_pct=5)
    assert feed(policy, [1.0, 3.5])[1] == TAKE_PROFIT


def test_monitor_never_exits():
    policy = MonitorPolicy()
    assert feed(policy, [-99.0, 0.0, 500.0])[1] is None


def test_build_policy():
    assert isinstance(build_policy("monitor"), MonitorPolicy)
    fixed = build_policy("FIXED", take_profit_pct=5, stop_loss_pct=10)
    assert fixed == FixedPolicy(take_profit_pct=5, stop_loss_pct=10)
    be = build_policy("breakeven", take_profit_pct=10, stop_loss_pct=5, breakeven_trigger_pct=4)
    assert be.initial_stop_loss_pct == 5 and be.breakeven_trigger_pct == 4
    try:
        build_policy("scalp-v7")
    except ValueError:
        pass
    else:
        raise AssertionError("unknown policy should raise")


def test_policy_states_are_independent():
    policy = build_policy("breakeven", take_profit_pct=10, stop_loss_pct=5, breakeven_trigger_pct=5)
    a, b = policy.new_state(), policy.new_state()
    policy.evaluate(6.0, a)
    assert a.armed is True and b.armed is False


# ══════════════════════════════════════════════════════════════
#  RUN ALL TESTS
# ══════════════════════════════════════════════════════════════

if __name__ == "__main__":
    passed = 0
    failed = 0
    tests = [(name, fn) for name, fn in sorted(globals().items()) if name.startswith("test_") and callable(fn)]
    print("\n── Exit Policy Tests ──")
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
