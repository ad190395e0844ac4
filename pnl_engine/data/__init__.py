"""
Data layer module for ledger aggregation and account hierarchy rollups.
"""
from pnl_engine.data.ledger import (
    Scenario,
    LedgerTable,
    build_account_totals,
)
from pnl_engine.data.account_hierarchy import (
    AccountSettings,
    AccountConfig,
    HierarchyIndex,
    RollupResult,
    RollupEngine,
    compute_rollups,
    check_hierarchy,
)

__all__ = [
    # Ledger aggregation
    "Scenario",
    "LedgerTable",
    "build_account_totals",
    # Account hierarchy
    "AccountSettings",
    "AccountConfig",
    "HierarchyIndex",
    "RollupResult",
    "RollupEngine",
    "compute_rollups",
    "check_hierarchy",
]
