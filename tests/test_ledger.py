"""
Unit tests for ledger tables and per-scenario aggregation.

Tests cover:
- Per-account totals for Actuals and Budget
- Non-numeric and missing values
- Missing and ragged columns
- Customer filtering for multi-entity fetches
"""
import pandas as pd
import pytest

from pnl_engine.data.ledger import LedgerTable, Scenario, build_account_totals


@pytest.fixture
def mixed_table():
    return LedgerTable.from_columns({
        "Account": ["Income", "Income", "Income", "Expense", "Expense", "Income"],
        "Scenario": ["Actuals", "Actuals", "Budget", "Actuals", "Actuals", "Forecast"],
        "Value": [100, "50", 80, "abc", None, 999],
    })


class TestBuildAccountTotals:
    """Tests for build_account_totals."""

    def test_actuals(self, mixed_table):
        totals = build_account_totals(mixed_table, Scenario.ACTUALS)
        assert totals == {"Income": 150.0, "Expense": 0.0}

    def test_budget(self, mixed_table):
        totals = build_account_totals(mixed_table, Scenario.BUDGET)
        assert totals == {"Income": 80.0}

    def test_first_seen_order(self, mixed_table):
        totals = build_account_totals(mixed_table, Scenario.ACTUALS)
        assert list(totals) == ["Income", "Expense"]

    def test_other_scenarios_ignored(self, mixed_table):
        """A Forecast row never leaks into Actuals or Budget."""
        assert build_account_totals(mixed_table, Scenario.ACTUALS)["Income"] == 150.0

    def test_missing_table(self):
        assert build_account_totals(None, Scenario.ACTUALS) == {}

    def test_missing_columns(self):
        table = LedgerTable.from_columns({"Account": ["Income"], "Scenario": ["Actuals"]})
        assert build_account_totals(table, Scenario.ACTUALS) == {}

    def test_empty_table(self):
        table = LedgerTable.from_columns({"Account": [], "Scenario": [], "Value": []})
        assert build_account_totals(table, Scenario.ACTUALS) == {}

    def test_ragged_columns(self):
        """Trailing rows without a value count as 0; without a scenario they are skipped."""
        table = LedgerTable.from_columns({
            "Account": ["Income", "Income", "Expense"],
            "Scenario": ["Actuals", "Actuals"],
            "Value": [10, 20, 30],
        })
        assert build_account_totals(table, Scenario.ACTUALS) == {"Income": 30.0}

        short_values = LedgerTable.from_columns({
            "Account": ["Income", "Expense"],
            "Scenario": ["Actuals", "Actuals"],
            "Value": [10],
        })
        assert build_account_totals(short_values, Scenario.ACTUALS) == {"Income": 10.0, "Expense": 0.0}


class TestLedgerTable:
    """Tests for LedgerTable construction and filtering."""

    def test_has_columns(self):
        assert LedgerTable.from_columns({"Account": [], "Value": []}).has_columns
        assert not LedgerTable.from_columns({"Account": ["A"]}).has_columns
        assert not LedgerTable.from_columns({"Value": [1]}).has_columns
        assert not LedgerTable.from_columns(None).has_columns

    def test_from_columns_passes_tables_through(self, mixed_table):
        assert LedgerTable.from_columns(mixed_table) is mixed_table

    def test_to_dataframe(self, mixed_table):
        frame = mixed_table.to_dataframe()
        assert isinstance(frame, pd.DataFrame)
        assert list(frame.columns) == ["Account", "Scenario", "Value", "Customer"]
        assert len(frame) == 6

    def test_to_columns_round_trip(self):
        columns = {"Account": ["A"], "Value": [1], "Scenario": ["Actuals"]}
        assert LedgerTable.from_columns(columns).to_columns() == columns

    def test_filter_by_customers(self):
        table = LedgerTable.from_columns({
            "Account": ["Income", "Income", "Expense", "Income"],
            "Scenario": ["Actuals"] * 4,
            "Value": [1, 2, 3, 4],
            "Customer": [1, 2, "1", None],
        })
        filtered = table.filter_by_customers(["1"])

        assert filtered.values == [1, 3]
        assert filtered.accounts == ["Income", "Expense"]

    def test_filter_without_customer_column(self, mixed_table):
        filtered = mixed_table.filter_by_customers(["1"])
        assert len(filtered) == 0
        assert filtered.has_columns

    def test_filter_no_matches(self):
        table = LedgerTable.from_columns({
            "Account": ["Income"], "Scenario": ["Actuals"], "Value": [5], "Customer": ["9"],
        })
        filtered = table.filter_by_customers(["1", "2"])
        assert len(filtered) == 0
        assert build_account_totals(filtered, Scenario.ACTUALS) == {}
