"""
Unit tests for DataFrame and text export of rendered documents.
"""
import pytest

from pnl_engine.core.report_assembler import generate_pnl_report
from pnl_engine.tools.table_export import CELL_COLUMNS, document_to_dataframe, render_text


@pytest.fixture
def document(make_ledger, account_config_raw, section_config_raw, settings):
    month = make_ledger([
        ("Service Revenue", "Actuals", 1500.0),
        ("Salaries", "Actuals", 300.0),
    ])
    return generate_pnl_report(
        month, None,
        meta={"typeLabel": "District", "entityName": "District 9", "monthLabel": "2025-03-01"},
        account_config=account_config_raw,
        section_config=section_config_raw,
        settings=settings,
    ).document


class TestDocumentToDataframe:
    def test_one_row_per_statement_row(self, document):
        frame = document_to_dataframe(document)

        assert len(frame) == len(document.rows)
        assert list(frame.columns[-len(CELL_COLUMNS):]) == CELL_COLUMNS

    def test_values(self, document):
        frame = document_to_dataframe(document).set_index("Account")

        assert frame.loc["Income", "Month Actual"] == "1,500"
        assert frame.loc["Income", "Month Actual %"] == "100.0%"
        assert frame.loc["Service Revenue", "Depth"] == 2
        assert frame.loc["REVENUE", "Month Actual"] == ""


class TestRenderText:
    def test_header_and_rows(self, document):
        text = render_text(document)

        assert text.splitlines()[0] == "District 9"
        assert "Mar - 2025" in text
        assert "    Service Revenue" in text
        assert "1,500" in text

    def test_placeholder_document(self, account_config_raw, settings):
        placeholder = generate_pnl_report(
            None, None,
            meta={"typeLabel": "District", "entityName": "D1"},
            account_config=account_config_raw,
            settings=settings,
        ).document
        assert "No data" in render_text(placeholder)
