"""
Multi-Level Report Bundles

Renders a whole entity tree (Subsidiary -> Region -> District -> Facility)
from one combined customer-level fetch. Each group gets a summary report,
followed depth-first by its children's reports.

Rules:
- Facilities without month revenue are left out of the bundle
- A group whose summary is flagged no-revenue is left out with its children
- Summary headers count only the children that made it into the bundle
- The root summary may use its own dedicated fetch
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from config.settings import ReportSettings
from pnl_engine.core.error_taxonomy import ErrorCategory, PnLError
from pnl_engine.core.observability import Observer
from pnl_engine.core.report_assembler import (
    EntityMeta,
    EntityType,
    ReportDocument,
    build_header,
    generate_pnl_report,
)
from pnl_engine.core.section_renderer import SectionConfig
from pnl_engine.data.account_hierarchy import AccountConfig
from pnl_engine.data.ledger import LedgerTable

logger = logging.getLogger(__name__)


@dataclass
class EntityNode:
    """One entity of the reporting tree; facilities carry the customer id."""
    name: str
    entity_type: EntityType
    customer_id: Optional[str] = None
    children: List["EntityNode"] = field(default_factory=list)
    # Extra header fields (parentDistrict, actualCensus, startDateEst, ...)
    meta: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "EntityNode":
        """
        Build from `{name, type, customerId?, meta?, children?}`.

        Raises:
            PnLError: for an unknown entity type or a facility without a customer id
        """
        entity_type = EntityType.parse(raw.get("type"))
        if entity_type is None:
            raise PnLError(
                f"Unknown entity type {raw.get('type')!r} for {raw.get('name')!r}",
                category=ErrorCategory.DATA_FORMAT_ERROR,
            )

        customer_id = raw.get("customerId")
        if entity_type == EntityType.FACILITY and customer_id is None:
            raise PnLError(
                f"Facility {raw.get('name')!r} has no customerId",
                category=ErrorCategory.DATA_FORMAT_ERROR,
            )

        return cls(
            name=str(raw.get("name") or ""),
            entity_type=entity_type,
            customer_id=None if customer_id is None else str(customer_id),
            children=[cls.from_dict(child) for child in raw.get("children") or []],
            meta=dict(raw.get("meta") or {}),
        )

    @property
    def is_facility(self) -> bool:
        return self.entity_type == EntityType.FACILITY

    def customer_ids(self) -> List[str]:
        """Customer ids of every facility below (or at) this node."""
        if self.is_facility:
            return [self.customer_id]
        return [cid for child in self.children for cid in child.customer_ids()]

    def walk(self) -> Iterator["EntityNode"]:
        yield self
        for child in self.children:
            yield from child.walk()


@dataclass
class ReportBundle:
    """Ordered documents of one multi-level run."""
    documents: List[ReportDocument] = field(default_factory=list)
    no_revenue: bool = False
    region_count: int = 0
    district_count: int = 0
    facility_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "noRevenue": self.no_revenue,
            "regionCount": self.region_count,
            "districtCount": self.district_count,
            "facilityCount": self.facility_count,
            "documents": [d.to_dict() for d in self.documents],
        }


@dataclass
class _Included:
    """Children of a group that made it into the bundle."""
    regions: int = 0
    districts: int = 0
    facilities: int = 0

    def add(self, other: "_Included"):
        self.regions += other.regions
        self.districts += other.districts
        self.facilities += other.facilities


class ReportBundler:
    """
    Renders a summary-then-children bundle for an entity tree.

    Usage:
        bundler = ReportBundler(account_config, section_config, month_label="2025-03-01")
        bundle = bundler.build(root, month_data, ytd_data)
    """

    def __init__(
        self,
        account_config: AccountConfig,
        section_config: SectionConfig = None,
        month_label: Optional[str] = None,
        pl_type: str = "Standard",
        settings: ReportSettings = None,
        observer: Observer = None,
    ):
        self.account_config = AccountConfig.from_dict(account_config)
        self.section_config = section_config
        self.month_label = month_label
        self.pl_type = pl_type
        self.settings = settings or ReportSettings()
        self.observer = observer

    def build(
        self,
        root: EntityNode,
        month_data: Any,
        ytd_data: Any,
        root_month_data: Any = None,
        root_ytd_data: Any = None,
    ) -> ReportBundle:
        """
        Render the whole tree below `root`.

        Args:
            root: Top of the entity tree (any level)
            month_data: Combined customer-level month table for every facility
            ytd_data: Combined customer-level YTD table
            root_month_data: Optional dedicated month table for the root summary
            root_ytd_data: Optional dedicated YTD table for the root summary
        """
        month = LedgerTable.from_columns(month_data)
        ytd = LedgerTable.from_columns(ytd_data)

        root_data = None
        if root_month_data is not None:
            root_data = (LedgerTable.from_columns(root_month_data), LedgerTable.from_columns(root_ytd_data))

        documents, included, no_revenue = self._render_node(root, month, ytd, root_data)

        bundle = ReportBundle(
            documents=documents,
            no_revenue=no_revenue,
            region_count=included.regions,
            district_count=included.districts,
            facility_count=included.facilities,
        )
        logger.info(
            f"Bundled {len(documents)} reports for {root.name!r}: "
            f"{bundle.region_count} regions, {bundle.district_count} districts, "
            f"{bundle.facility_count} facilities"
        )
        return bundle

    def _meta_for(self, node: EntityNode, parent: Optional[EntityNode] = None) -> EntityMeta:
        raw = {
            "typeLabel": node.entity_type.value,
            "entityName": node.name,
            "monthLabel": self.month_label,
            "plType": self.pl_type,
        }
        if node.is_facility and parent is not None and parent.entity_type == EntityType.DISTRICT:
            raw["parentDistrict"] = parent.name
        raw.update(node.meta)
        return EntityMeta.from_dict(raw)

    def _render(self, node: EntityNode, meta: EntityMeta, month: LedgerTable, ytd: LedgerTable):
        return generate_pnl_report(
            month,
            ytd,
            title_label=node.name,
            meta=meta,
            account_config=self.account_config,
            section_config=self.section_config,
            settings=self.settings,
            observer=self.observer,
        )

    def _render_node(
        self,
        node: EntityNode,
        month: LedgerTable,
        ytd: LedgerTable,
        own_data: Optional[Tuple[LedgerTable, LedgerTable]] = None,
        parent: Optional[EntityNode] = None,
    ) -> Tuple[List[ReportDocument], _Included, bool]:
        meta = self._meta_for(node, parent)

        if own_data is not None:
            node_month, node_ytd = own_data
        else:
            ids = node.customer_ids()
            node_month, node_ytd = month.filter_by_customers(ids), ytd.filter_by_customers(ids)

        result = self._render(node, meta, node_month, node_ytd)

        if node.is_facility:
            if result.no_revenue:
                logger.debug(f"Facility {node.name!r} has no revenue; left out of bundle")
                return [], _Included(), True
            return [result.document], _Included(facilities=1), False

        if result.no_revenue:
            logger.warning(f"{node.entity_type.value} {node.name!r} has no revenue; skipping its reports")
            return [], _Included(), True

        child_documents: List[ReportDocument] = []
        included = _Included()
        for child in node.children:
            documents, child_included, child_no_revenue = self._render_node(child, month, ytd, parent=node)
            if child_no_revenue:
                continue
            child_documents.extend(documents)
            included.add(child_included)
            if child.entity_type == EntityType.REGION:
                included.regions += 1
            elif child.entity_type == EntityType.DISTRICT:
                included.districts += 1

        # Header counts reflect included children only
        counted = meta.with_changes(
            region_count=included.districts if node.entity_type == EntityType.REGION else included.regions,
            district_count=included.districts,
            facility_count=included.facilities,
        )
        summary = result.document
        summary.meta = counted
        summary.header = build_header(counted, node.name, self.settings)

        return [summary] + child_documents, included, False
