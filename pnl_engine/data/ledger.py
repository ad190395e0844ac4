"""
Ledger Rows and Scenario Aggregation

The data-fetch layer hands the engine one columnar table per period:
parallel sequences `{Account, Value, Scenario}` (plus an optional `Customer`
column when several facilities were fetched in one query).

Key Concepts:
- Scenario: whether a ledger value is an Actual or a Budget figure
- Account totals: per-account sum of one scenario's values, before rollup
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional

import pandas as pd

logger = logging.getLogger(__name__)


class Scenario(str, Enum):
    """Classification of a ledger value."""
    ACTUALS = "Actuals"
    BUDGET = "Budget"


@dataclass
class LedgerTable:
    """
    Columnar ledger rows for one period.

    The Account column defines the row count. Value and Scenario columns that
    are shorter are treated as missing for the trailing rows.
    """
    accounts: Optional[List[Any]] = None
    values: Optional[List[Any]] = None
    scenarios: Optional[List[Any]] = None
    customers: Optional[List[Any]] = None

    @classmethod
    def from_columns(cls, data: Optional[Mapping[str, Any]]) -> "LedgerTable":
        """Build from the `{Account, Value, Scenario, Customer}` mapping the warehouse returns."""
        if data is None:
            return cls()
        if isinstance(data, LedgerTable):
            return data

        def column(name: str) -> Optional[List[Any]]:
            values = data.get(name)
            return None if values is None else list(values)

        return cls(
            accounts=column("Account"),
            values=column("Value"),
            scenarios=column("Scenario"),
            customers=column("Customer"),
        )

    @property
    def has_columns(self) -> bool:
        """True when both the account list and the value list are present."""
        return self.accounts is not None and self.values is not None

    def __len__(self) -> int:
        return len(self.accounts) if self.accounts is not None else 0

    def to_dataframe(self) -> pd.DataFrame:
        """Rows as a DataFrame with Account, Scenario, Value and Customer columns."""
        n = len(self)
        index = pd.RangeIndex(n)

        def aligned(values: Optional[List[Any]]) -> pd.Series:
            return pd.Series(list(values or [])[:n], dtype=object).reindex(index)

        return pd.DataFrame({
            "Account": pd.Series(list(self.accounts or []), dtype=object, index=index),
            "Scenario": aligned(self.scenarios),
            "Value": aligned(self.values),
            "Customer": aligned(self.customers),
        })

    def to_columns(self) -> Dict[str, List[Any]]:
        result = {}
        for name, values in (
            ("Account", self.accounts),
            ("Value", self.values),
            ("Scenario", self.scenarios),
            ("Customer", self.customers),
        ):
            if values is not None:
                result[name] = list(values)
        return result

    def filter_by_customers(self, customer_ids: Iterable[Any]) -> "LedgerTable":
        """
        Keep only rows belonging to the given customers.

        Ids are compared as strings. A table without a Customer column has no
        rows for any customer.
        """
        allowed = {str(c) for c in customer_ids}
        if not self.has_columns or self.customers is None:
            return LedgerTable(accounts=[], values=[], scenarios=[], customers=[])

        frame = self.to_dataframe()
        mask = frame["Customer"].map(lambda c: not pd.isna(c) and str(c) in allowed)
        kept = frame[mask.astype(bool)]

        return LedgerTable(
            accounts=kept["Account"].tolist(),
            values=kept["Value"].tolist(),
            scenarios=kept["Scenario"].tolist(),
            customers=kept["Customer"].tolist(),
        )


def build_account_totals(table: Optional[LedgerTable], scenario: Scenario) -> Dict[str, float]:
    """
    Sum ledger values per account for one scenario.

    Non-numeric or missing values count as 0. Rows of any other scenario are
    ignored. Accounts with no matching rows are absent from the result.

    Returns:
        Dict mapping account id to total, in first-seen order
    """
    if table is None or not table.has_columns or table.scenarios is None or len(table) == 0:
        return {}

    frame = table.to_dataframe()
    matched = frame[frame["Scenario"].map(lambda s: s == scenario.value)]
    if matched.empty:
        return {}

    amounts = pd.to_numeric(matched["Value"], errors="coerce").fillna(0.0)
    totals = amounts.groupby(matched["Account"], sort=False).sum()

    logger.debug(f"Built {len(totals)} {scenario.value} account totals from {len(matched)} rows")
    return {str(account): float(total) for account, total in totals.items()}
