"""
Shared fixtures for the P&L engine tests.
"""
import pytest

from config.settings import ReportSettings


@pytest.fixture
def account_config_raw():
    """Small chart of accounts in configuration-store form."""
    return {
        "Income": {},
        "Service Revenue": {"parent": "Income"},
        "Product Revenue": {"parent": "Income"},
        "Expense": {},
        "Salaries": {"parent": "Expense"},
        "Management Fee": {"parent": "Expense", "operationalExcluded": True},
        "Bank Fees": {"parent": "Expense", "displayExcluded": True},
        "Net Income": {"doubleLines": True},
    }


@pytest.fixture
def raw_totals():
    return {
        "Income": 10.0,
        "Service Revenue": 100.0,
        "Product Revenue": 50.0,
        "Salaries": 40.0,
        "Management Fee": 15.0,
        "Bank Fees": 5.0,
    }


@pytest.fixture
def section_config_raw():
    return {
        "REVENUE": ["Income"],
        "EXPENSES": ["Expense", "Net Income"],
    }


@pytest.fixture
def settings():
    """Settings independent of the REPORT_* environment variables."""
    return ReportSettings(income_account="Income", organisation_name="Acme Health")


@pytest.fixture
def make_ledger():
    """Builds a columnar ledger table from (account, scenario, value) tuples."""
    return _ledger


@pytest.fixture
def combine_ledgers():
    return _combine


def _ledger(rows, customer=None):
    table = {
        "Account": [r[0] for r in rows],
        "Scenario": [r[1] for r in rows],
        "Value": [r[2] for r in rows],
    }
    if customer is not None:
        table["Customer"] = [customer] * len(rows)
    return table


def _combine(*tables):
    result = {}
    for table in tables:
        for name, values in table.items():
            result.setdefault(name, []).extend(values)
    return result
