"""
P&L Report Assembly

Single entry point of the engine: takes one entity's month and YTD ledger
tables plus the account and section configuration, and returns an abstract
statement document (header + section blocks) ready for the delivery layer.

Pipeline:
1. Header for the entity type (Facility, Subsidiary, Region, District)
2. No-data gate: month table without Account/Value columns
3. Aggregate raw totals x4 (month/YTD x Actuals/Budget)
4. Roll up x4 through the account hierarchy
5. No-revenue gate: facilities with no month-actual Income are suppressed
6. Render sections

The call is pure and synchronous; all intermediate state is local to it.
"""
import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union

from config.settings import ReportSettings
from pnl_engine.core.error_taxonomy import ErrorCategory, PnLError
from pnl_engine.core.input_schemas import EntityMetaSchema, validate_payload
from pnl_engine.core.observability import Observer, SpanKind, Tracer
from pnl_engine.core.section_renderer import (
    COLUMN_HEADERS,
    IncomeTotals,
    PeriodRollups,
    ReportRow,
    RowKind,
    SectionBlock,
    SectionConfig,
    SectionRenderer,
)
from pnl_engine.data.account_hierarchy import AccountConfig, HierarchyIndex, RollupEngine
from pnl_engine.data.ledger import LedgerTable, Scenario, build_account_totals
from pnl_engine.tools.formatter import format_census, format_count, format_month_label

logger = logging.getLogger(__name__)

NO_DATA_LABEL = "No data"


class EntityType(str, Enum):
    """Level of the reporting hierarchy a report is produced for."""
    FACILITY = "Facility"
    SUBSIDIARY = "Subsidiary"
    REGION = "Region"
    DISTRICT = "District"

    @classmethod
    def parse(cls, label: Optional[str]) -> Optional["EntityType"]:
        for member in cls:
            if member.value == label:
                return member
        return None


class PLType(str, Enum):
    OPERATIONAL = "Operational"
    STANDARD = "Standard"


@dataclass
class EntityMeta:
    """Descriptive fields for one report's header and gates."""
    type_label: Optional[str] = None
    entity_name: str = ""
    month_label: Optional[str] = None
    region_count: Optional[int] = None
    district_count: Optional[int] = None
    facility_count: Optional[int] = None
    parent_district: Optional[str] = None
    actual_census: Optional[float] = None
    budget_census: Optional[float] = None
    start_date_est: Optional[str] = None
    pl_type: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: Optional[Mapping[str, Any]]) -> "EntityMeta":
        if raw is None:
            return cls()
        if isinstance(raw, EntityMeta):
            return raw

        is_valid, parsed, errors = validate_payload(raw, EntityMetaSchema)
        if not is_valid:
            raise PnLError(
                f"Invalid entity metadata: {'; '.join(errors)}",
                category=ErrorCategory.DATA_FORMAT_ERROR,
                context={"errors": errors},
            )
        return cls(**parsed.model_dump())

    @property
    def entity_type(self) -> Optional[EntityType]:
        return EntityType.parse(self.type_label)

    @property
    def is_operational(self) -> bool:
        return self.pl_type == PLType.OPERATIONAL.value

    def with_changes(self, **changes) -> "EntityMeta":
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "typeLabel": self.type_label,
            "entityName": self.entity_name,
            "monthLabel": self.month_label,
            "regionCount": self.region_count,
            "districtCount": self.district_count,
            "facilityCount": self.facility_count,
            "parentDistrict": self.parent_district,
            "actualCensus": self.actual_census,
            "budgetCensus": self.budget_census,
            "startDateEst": self.start_date_est,
            "plType": self.pl_type,
        }


@dataclass
class HeaderLine:
    text: str
    role: str = "meta"  # "title", "subtitle" or "meta"


@dataclass
class ReportHeader:
    lines: List[HeaderLine] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.lines

    @property
    def title(self) -> Optional[str]:
        for line in self.lines:
            if line.role == "title":
                return line.text
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {"lines": [{"role": line.role, "text": line.text} for line in self.lines]}


def build_header(
    meta: EntityMeta,
    title_label: str = "",
    settings: ReportSettings = None,
) -> ReportHeader:
    """Header block for the entity type; unknown types get an empty header."""
    settings = settings or ReportSettings()
    entity_type = meta.entity_type
    if entity_type is None:
        return ReportHeader()

    month = format_month_label(meta.month_label)
    lines = [HeaderLine(meta.entity_name or title_label or "", "title")]

    census = []
    if meta.actual_census is not None:
        census.append(HeaderLine(f"Census Actual: {format_census(meta.actual_census)}"))
    if meta.budget_census is not None:
        census.append(HeaderLine(f"Census Budget: {format_census(meta.budget_census)}"))

    if entity_type == EntityType.FACILITY:
        lines.append(HeaderLine(month))
        lines.append(HeaderLine("Type: Facility"))
        if meta.parent_district:
            lines.append(HeaderLine(meta.parent_district))
        lines.extend(census)
        if meta.start_date_est:
            lines.append(HeaderLine(f"Start Date: {meta.start_date_est}"))
    elif entity_type == EntityType.SUBSIDIARY:
        lines.append(HeaderLine("Actual vs Budget", "subtitle"))
        lines.append(HeaderLine(month))
        lines.append(HeaderLine(f"Districts: {format_count(meta.district_count)}"))
        lines.append(HeaderLine(f"Facilities: {format_count(meta.facility_count)}"))
    elif entity_type == EntityType.REGION:
        lines.append(HeaderLine(settings.organisation_name, "subtitle"))
        lines.append(HeaderLine(month))
        lines.append(HeaderLine(f"Districts: {format_count(meta.region_count)}"))
        lines.append(HeaderLine(f"Facilities: {format_count(meta.facility_count)}"))
    elif entity_type == EntityType.DISTRICT:
        lines.append(HeaderLine(settings.organisation_name, "subtitle"))
        lines.append(HeaderLine(month))
        lines.append(HeaderLine(f"Facilities: {format_count(meta.facility_count)}"))
        lines.append(HeaderLine("Type: District"))
        lines.extend(census)

    return ReportHeader(lines)


@dataclass
class ReportDocument:
    """Header plus ordered section blocks; owned by the caller once returned."""
    header: ReportHeader
    sections: List[SectionBlock] = field(default_factory=list)
    meta: Optional[EntityMeta] = None
    column_headers: List[str] = field(default_factory=lambda: list(COLUMN_HEADERS))

    @property
    def rows(self) -> List[ReportRow]:
        return [row for block in self.sections for row in block.rows]

    @property
    def account_rows(self) -> List[ReportRow]:
        return [row for row in self.rows if row.kind == RowKind.ACCOUNT]

    @property
    def is_placeholder(self) -> bool:
        return any(row.kind == RowKind.PLACEHOLDER for row in self.rows)

    def find_row(self, account_id: str) -> Optional[ReportRow]:
        for row in self.account_rows:
            if row.account_id == account_id:
                return row
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "header": self.header.to_dict(),
            "columnHeaders": list(self.column_headers),
            "meta": self.meta.to_dict() if self.meta else None,
            "sections": [block.to_dict() for block in self.sections],
        }

    def to_dataframe(self):
        from pnl_engine.tools.table_export import document_to_dataframe
        return document_to_dataframe(self)


@dataclass
class ReportResult:
    """Outcome handed to the delivery layer."""
    no_revenue: bool
    document: Optional[ReportDocument] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"noRevenue": self.no_revenue}
        if self.document is not None:
            result["document"] = self.document.to_dict()
        return result


def _no_data_document(header: ReportHeader, meta: EntityMeta) -> ReportDocument:
    placeholder = SectionBlock(name="", rows=[ReportRow(account_label=NO_DATA_LABEL, kind=RowKind.PLACEHOLDER)])
    return ReportDocument(header=header, sections=[placeholder], meta=meta)


def generate_pnl_report(
    month_data: Union[LedgerTable, Mapping[str, Any], None],
    ytd_data: Union[LedgerTable, Mapping[str, Any], None],
    title_label: str = "Entity Total",
    meta: Union[EntityMeta, Mapping[str, Any], None] = None,
    account_config: Union[AccountConfig, Mapping[str, Any], None] = None,
    section_config: Union[SectionConfig, Mapping[str, Any], None] = None,
    settings: ReportSettings = None,
    tracer: Tracer = None,
    observer: Observer = None,
) -> ReportResult:
    """
    Build one entity's P&L statement.

    Args:
        month_data: Columnar `{Account, Value, Scenario}` rows for the month
        ytd_data: Same shape for the year-to-date window (may be None)
        title_label: Title used when the entity has no name
        meta: Entity metadata (type, name, month label, counts, census, P&L type)
        account_config: Account hierarchy and exclusion flags
        section_config: Section layout (defaults to the standard three sections)
        settings: Rendering constants
        tracer: Request-scoped tracer; one is created when omitted
        observer: Callback receiving computed totals and gate events

    Returns:
        ReportResult; `document` is None when a facility has no revenue

    Raises:
        ConfigError: if the account hierarchy contains a cycle
    """
    settings = settings or ReportSettings()
    meta = EntityMeta.from_dict(meta)
    accounts = AccountConfig.from_dict(account_config)
    sections = SectionConfig.from_dict(section_config) if section_config is not None else SectionConfig.default()
    tracer = tracer or Tracer(observer=observer)

    is_facility = meta.entity_type == EntityType.FACILITY
    header = build_header(meta, title_label, settings)

    with tracer.start_trace(meta.entity_name or title_label, type_label=meta.type_label):
        month = LedgerTable.from_columns(month_data)
        if not month.has_columns:
            logger.warning(f"No month data for {meta.entity_name or title_label!r}; rendering placeholder")
            tracer.emit("no_data", {"entity": meta.entity_name})
            return ReportResult(no_revenue=is_facility, document=_no_data_document(header, meta))

        ytd = LedgerTable.from_columns(ytd_data)

        with tracer.start_span("aggregate", SpanKind.AGGREGATION, {"month_rows": len(month), "ytd_rows": len(ytd)}):
            raw = {
                "month_actual": build_account_totals(month, Scenario.ACTUALS),
                "month_budget": build_account_totals(month, Scenario.BUDGET),
                "ytd_actual": build_account_totals(ytd, Scenario.ACTUALS),
                "ytd_budget": build_account_totals(ytd, Scenario.BUDGET),
            }
            for name, totals in raw.items():
                tracer.record_totals(f"{name}_raw", totals)

        index = HierarchyIndex.from_config(accounts)
        engine = RollupEngine(accounts, index, is_operational=meta.is_operational)

        with tracer.start_span("rollup", SpanKind.ROLLUP, {"accounts": len(accounts)}):
            rollups = PeriodRollups(**{name: engine.compute(totals) for name, totals in raw.items()})
            for name, result in rollups.to_dict().items():
                tracer.record_totals(name, result)

        income = IncomeTotals.from_rollups(rollups, settings.income_account)

        if is_facility and abs(income.month_actual) < settings.zero_tolerance:
            logger.info(f"Facility {meta.entity_name!r} has no revenue (Income = {income.month_actual}); suppressing report")
            tracer.emit("no_revenue", {"entity": meta.entity_name, "income": income.month_actual})
            return ReportResult(no_revenue=True)

        with tracer.start_span("render", SpanKind.RENDERING, {"sections": len(sections)}):
            blocks = SectionRenderer(
                sections,
                rollups,
                accounts,
                index,
                income,
                is_operational=meta.is_operational,
                settings=settings,
            ).render()

        with tracer.start_span("assemble", SpanKind.ASSEMBLY, {"blocks": len(blocks)}):
            document = ReportDocument(header=header, sections=blocks, meta=meta)

    logger.info(
        f"Generated P&L for {meta.entity_name or title_label!r}: "
        f"{len(document.account_rows)} account rows in {len(blocks)} sections"
    )
    return ReportResult(no_revenue=False, document=document)
