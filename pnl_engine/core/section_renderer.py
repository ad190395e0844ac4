"""
Section Rendering

Walks the section layout and the account hierarchy to produce the ordered
statement rows. The layout decides which accounts open each section; the
hierarchy decides what is nested under them.

Row order within a branch is bottom-up: detail rows first, then the rollup
row of their parent, the way a printed P&L reads.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Set

from config.settings import DEFAULT_SECTION_CONFIG, ReportSettings
from pnl_engine.core.error_taxonomy import ConfigError
from pnl_engine.core.input_schemas import SectionConfigSchema, SectionSpecSchema, validate_payload
from pnl_engine.data.account_hierarchy import AccountConfig, HierarchyIndex, RollupResult
from pnl_engine.tools.formatter import fmt, fmt_pct, percent_of

logger = logging.getLogger(__name__)

# Cell order of an account row, after the label
COLUMN_HEADERS = [
    "Actual", "%", "Budget", "%", "Act v Bud",
    "Actual", "%", "Budget", "%", "Act v Bud",
]


class RowKind(str, Enum):
    SECTION = "section"
    ACCOUNT = "account"
    PLACEHOLDER = "placeholder"


@dataclass
class PeriodFigures:
    """Rolled-up amounts of one account for both periods and scenarios."""
    month_actual: float = 0.0
    month_budget: float = 0.0
    ytd_actual: float = 0.0
    ytd_budget: float = 0.0

    @property
    def month_variance(self) -> float:
        return self.month_actual - self.month_budget

    @property
    def ytd_variance(self) -> float:
        return self.ytd_actual - self.ytd_budget

    def to_dict(self) -> Dict[str, float]:
        return {
            "monthActual": self.month_actual,
            "monthBudget": self.month_budget,
            "monthVariance": self.month_variance,
            "ytdActual": self.ytd_actual,
            "ytdBudget": self.ytd_budget,
            "ytdVariance": self.ytd_variance,
        }


@dataclass
class PeriodPercents:
    """Percent-of-income ratios; None where the Income denominator is zero."""
    month_actual: Optional[float] = None
    month_budget: Optional[float] = None
    ytd_actual: Optional[float] = None
    ytd_budget: Optional[float] = None

    def to_dict(self) -> Dict[str, Optional[float]]:
        return {
            "monthActual": self.month_actual,
            "monthBudget": self.month_budget,
            "ytdActual": self.ytd_actual,
            "ytdBudget": self.ytd_budget,
        }


@dataclass
class ReportRow:
    """One statement row: a section title, an account line or a placeholder."""
    account_label: str
    depth: int = 0
    kind: RowKind = RowKind.ACCOUNT
    account_id: Optional[str] = None
    values: Optional[PeriodFigures] = None
    percents: Optional[PeriodPercents] = None
    bold: bool = False
    # Border above and below the numeric cells only
    double_lines: bool = False
    indent: int = 0

    @property
    def cells(self) -> List[str]:
        """Display strings in COLUMN_HEADERS order (empty for non-account rows)."""
        if self.values is None:
            return []
        v, p = self.values, self.percents or PeriodPercents()
        return [
            fmt(v.month_actual), fmt_pct(p.month_actual),
            fmt(v.month_budget), fmt_pct(p.month_budget),
            fmt(v.month_variance),
            fmt(v.ytd_actual), fmt_pct(p.ytd_actual),
            fmt(v.ytd_budget), fmt_pct(p.ytd_budget),
            fmt(v.ytd_variance),
        ]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "accountLabel": self.account_label,
            "accountId": self.account_id,
            "depth": self.depth,
            "indent": self.indent,
            "bold": self.bold,
            "doubleLines": self.double_lines,
            "values": self.values.to_dict() if self.values else None,
            "percents": self.percents.to_dict() if self.percents else None,
            "cells": self.cells,
        }


@dataclass
class SectionBlock:
    """A section's header row followed by its account rows."""
    name: str
    rows: List[ReportRow] = field(default_factory=list)

    @property
    def account_rows(self) -> List[ReportRow]:
        return [r for r in self.rows if r.kind == RowKind.ACCOUNT]

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "rows": [r.to_dict() for r in self.rows]}


@dataclass
class SectionSpec:
    title: str
    accounts: List[str] = field(default_factory=list)


class SectionConfig:
    """Ordered section name -> top-level accounts layout."""

    def __init__(self, sections: Mapping[str, SectionSpec] = None):
        self.sections: Dict[str, SectionSpec] = dict(sections or {})

    @classmethod
    def from_dict(cls, raw: Optional[Mapping[str, Any]]) -> "SectionConfig":
        """
        Accepts `{section: [accounts]}` or `{section: {header, accounts}}`.

        Raises:
            ConfigError: if the payload does not match either shape
        """
        if raw is None:
            return cls()
        if isinstance(raw, SectionConfig):
            return raw

        is_valid, parsed, errors = validate_payload(raw, SectionConfigSchema)
        if not is_valid:
            raise ConfigError(
                f"Invalid section configuration: {'; '.join(errors)}",
                context={"errors": errors},
            )

        sections = {}
        for name, entry in parsed.root.items():
            if isinstance(entry, SectionSpecSchema):
                sections[name] = SectionSpec(title=entry.header or name, accounts=list(entry.accounts))
            else:
                sections[name] = SectionSpec(title=name, accounts=list(entry))
        return cls(sections)

    @classmethod
    def default(cls) -> "SectionConfig":
        return cls.from_dict(DEFAULT_SECTION_CONFIG)

    @property
    def top_level_accounts(self) -> Set[str]:
        return {a for spec in self.sections.values() for a in spec.accounts}

    def items(self):
        return self.sections.items()

    def __len__(self) -> int:
        return len(self.sections)

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        return {
            name: {"header": spec.title, "accounts": list(spec.accounts)}
            for name, spec in self.sections.items()
        }


@dataclass
class PeriodRollups:
    """The four rollups of one report."""
    month_actual: RollupResult
    month_budget: RollupResult
    ytd_actual: RollupResult
    ytd_budget: RollupResult

    def figures_for(self, account_id: str) -> PeriodFigures:
        return PeriodFigures(
            month_actual=self.month_actual[account_id],
            month_budget=self.month_budget[account_id],
            ytd_actual=self.ytd_actual[account_id],
            ytd_budget=self.ytd_budget[account_id],
        )

    def to_dict(self) -> Dict[str, Dict[str, float]]:
        return {
            "month_actual": self.month_actual.to_dict(),
            "month_budget": self.month_budget.to_dict(),
            "ytd_actual": self.ytd_actual.to_dict(),
            "ytd_budget": self.ytd_budget.to_dict(),
        }


@dataclass
class IncomeTotals:
    """Rolled Income per period/scenario: the percent-of-income denominators."""
    month_actual: float = 0.0
    month_budget: float = 0.0
    ytd_actual: float = 0.0
    ytd_budget: float = 0.0

    @classmethod
    def from_rollups(cls, rollups: PeriodRollups, income_account: str = "Income") -> "IncomeTotals":
        figures = rollups.figures_for(income_account)
        return cls(
            month_actual=figures.month_actual,
            month_budget=figures.month_budget,
            ytd_actual=figures.ytd_actual,
            ytd_budget=figures.ytd_budget,
        )

    def percents_for(self, figures: PeriodFigures) -> PeriodPercents:
        return PeriodPercents(
            month_actual=percent_of(figures.month_actual, self.month_actual),
            month_budget=percent_of(figures.month_budget, self.month_budget),
            ytd_actual=percent_of(figures.ytd_actual, self.ytd_actual),
            ytd_budget=percent_of(figures.ytd_budget, self.ytd_budget),
        )


class SectionRenderer:
    """
    Produces the ordered row tree for every section of a report.

    Rendering rules per account:
    - Hidden accounts emit no row; their children render at the same depth.
    - Accounts whose month + YTD actuals net to zero are dropped together
      with their whole subtree. Budget figures are not considered.
    - Children render first (one level deeper), then the account's own row.
    """

    def __init__(
        self,
        section_config: SectionConfig,
        rollups: PeriodRollups,
        account_config: AccountConfig,
        index: HierarchyIndex,
        income: IncomeTotals,
        is_operational: bool = False,
        settings: ReportSettings = None,
    ):
        self.section_config = section_config
        self.rollups = rollups
        self.account_config = account_config
        self.index = index
        self.income = income
        self.is_operational = is_operational
        self.settings = settings or ReportSettings()
        self._section_accounts = section_config.top_level_accounts

    def render(self) -> List[SectionBlock]:
        blocks = []
        for name, spec in self.section_config.items():
            block = SectionBlock(name=name)
            block.rows.append(ReportRow(account_label=spec.title, depth=0, kind=RowKind.SECTION, bold=True))
            for account_id in spec.accounts:
                block.rows.extend(self.render_account(account_id, 1))
            blocks.append(block)

        logger.debug(
            f"Rendered {len(blocks)} sections, "
            f"{sum(len(b.account_rows) for b in blocks)} account rows"
        )
        return blocks

    def render_account(self, account_id: str, depth: int) -> List[ReportRow]:
        """Rows for one account and its subtree, children before the account itself."""
        settings = self.account_config.get(account_id)
        kids = self.index.children_of(account_id)

        if settings.is_hidden(self.is_operational):
            rows = []
            for child in kids:
                rows.extend(self.render_account(child, depth))
            return rows

        figures = self.rollups.figures_for(account_id)
        if abs(figures.month_actual + figures.ytd_actual) < self.settings.zero_tolerance:
            return []

        rows = []
        for child in kids:
            rows.extend(self.render_account(child, depth + 1))

        has_visible_child = any(
            not self.account_config.get(child).is_hidden(self.is_operational) for child in kids
        )

        rows.append(ReportRow(
            account_label=settings.label or account_id,
            account_id=account_id,
            depth=depth,
            indent=depth * self.settings.indent_step,
            values=figures,
            percents=self.income.percents_for(figures),
            bold=has_visible_child or account_id in self._section_accounts,
            double_lines=settings.double_lines,
        ))
        return rows
