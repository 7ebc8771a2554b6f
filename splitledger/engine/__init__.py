"""Balance and settlement engine package."""

from splitledger.engine.balances import (
    BalanceEngine,
    compute_balances,
    net_balances,
)
from splitledger.engine.settlement import SettlementPlanner, plan_settlements

__all__ = [
    "BalanceEngine",
    "SettlementPlanner",
    "compute_balances",
    "net_balances",
    "plan_settlements",
]
