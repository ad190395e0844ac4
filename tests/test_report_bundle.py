"""
Unit tests for multi-level report bundles.

Tests cover:
- Summary-then-children document order
- Dropping facilities without revenue
- Header counts of included children
- Dedicated root data
- Entity tree parsing
"""
import pytest

from pnl_engine.core.error_taxonomy import PnLError
from pnl_engine.core.report_assembler import EntityType
from pnl_engine.core.report_bundle import EntityNode, ReportBundler


@pytest.fixture
def tree():
    return EntityNode.from_dict({
        "name": "Acme Holdings",
        "type": "Subsidiary",
        "children": [{
            "name": "West",
            "type": "Region",
            "children": [
                {
                    "name": "District 1",
                    "type": "District",
                    "children": [
                        {"name": "Maple Grove", "type": "Facility", "customerId": 1},
                        {"name": "Oak Park", "type": "Facility", "customerId": 2},
                    ],
                },
                {
                    "name": "District 2",
                    "type": "District",
                    "children": [
                        {"name": "Pine Hill", "type": "Facility", "customerId": 3,
                         "meta": {"startDateEst": "2021-06-01"}},
                    ],
                },
            ],
        }],
    })


@pytest.fixture
def combined_month(make_ledger, combine_ledgers):
    return combine_ledgers(
        make_ledger([("Service Revenue", "Actuals", 100.0), ("Salaries", "Actuals", 60.0)], customer=1),
        # No revenue for Oak Park
        make_ledger([("Salaries", "Actuals", 30.0)], customer=2),
        make_ledger([("Product Revenue", "Actuals", 50.0)], customer=3),
    )


@pytest.fixture
def bundler(account_config_raw, settings):
    return ReportBundler(account_config_raw, month_label="2025-03-01", settings=settings)


def titles(bundle):
    return [d.header.title for d in bundle.documents]


def lines(document):
    return [line.text for line in document.header.lines]


class TestReportBundler:
    """Tests for ReportBundler.build."""

    def test_document_order(self, bundler, tree, combined_month):
        bundle = bundler.build(tree, combined_month, None)

        assert titles(bundle) == [
            "Acme Holdings", "West", "District 1", "Maple Grove", "District 2", "Pine Hill",
        ]
        assert bundle.no_revenue is False

    def test_counts_only_included_children(self, bundler, tree, combined_month):
        bundle = bundler.build(tree, combined_month, None)
        subsidiary, region, district_1 = bundle.documents[:3]

        assert (bundle.region_count, bundle.district_count, bundle.facility_count) == (1, 2, 2)
        assert "Facilities: 1" in lines(district_1)
        assert "Districts: 2" in lines(region)
        assert "Facilities: 2" in lines(region)
        assert "Districts: 2" in lines(subsidiary)
        assert "Facilities: 2" in lines(subsidiary)

    def test_summaries_aggregate_all_customers(self, bundler, tree, combined_month):
        bundle = bundler.build(tree, combined_month, None)
        subsidiary = bundle.documents[0]

        assert subsidiary.find_row("Income").values.month_actual == 150.0
        assert subsidiary.find_row("Expense").values.month_actual == 90.0

    def test_facility_headers(self, bundler, tree, combined_month):
        bundle = bundler.build(tree, combined_month, None)
        maple, pine = bundle.documents[3], bundle.documents[5]

        assert lines(maple) == ["Maple Grove", "Mar - 2025", "Type: Facility", "District 1"]
        assert "Start Date: 2021-06-01" in lines(pine)

    def test_dedicated_root_data(self, bundler, tree, combined_month, make_ledger):
        root_month = make_ledger([("Service Revenue", "Actuals", 999.0)])
        bundle = bundler.build(tree, combined_month, None, root_month_data=root_month)

        assert bundle.documents[0].find_row("Income").values.month_actual == 999.0
        assert bundle.documents[1].find_row("Income").values.month_actual == 150.0

    def test_facility_root_without_revenue(self, bundler, combined_month):
        root = EntityNode.from_dict({"name": "Oak Park", "type": "Facility", "customerId": 2})
        bundle = bundler.build(root, combined_month, None)

        assert bundle.no_revenue is True
        assert bundle.documents == []

    def test_district_with_no_revenue_facilities(self, bundler, combined_month):
        root = EntityNode.from_dict({
            "name": "District 3",
            "type": "District",
            "children": [{"name": "Oak Park", "type": "Facility", "customerId": 2}],
        })
        bundle = bundler.build(root, combined_month, None)

        assert titles(bundle) == ["District 3"]
        assert "Facilities: 0" in lines(bundle.documents[0])

    def test_to_dict(self, bundler, tree, combined_month):
        result = bundler.build(tree, combined_month, None).to_dict()
        assert result["noRevenue"] is False
        assert result["facilityCount"] == 2
        assert len(result["documents"]) == 6


class TestEntityNode:
    def test_customer_ids(self, tree):
        assert tree.customer_ids() == ["1", "2", "3"]
        assert tree.children[0].children[1].customer_ids() == ["3"]

    def test_walk(self, tree):
        assert [n.entity_type for n in tree.walk()][:3] == [
            EntityType.SUBSIDIARY, EntityType.REGION, EntityType.DISTRICT,
        ]

    def test_unknown_type(self):
        with pytest.raises(PnLError):
            EntityNode.from_dict({"name": "X", "type": "Planet"})

    def test_facility_requires_customer_id(self):
        with pytest.raises(PnLError):
            EntityNode.from_dict({"name": "X", "type": "Facility"})
