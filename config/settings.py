"""
Configuration settings for the P&L rollup and rendering engine.

All tunables are read from environment variables with sensible defaults,
so the same engine can serve scheduled email runs and ad-hoc CLI renders.
"""
import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional


# Default report layout used when the configuration store supplies none
DEFAULT_SECTION_CONFIG: Dict[str, List[str]] = {
    "REVENUE": ["Income"],
    "COST OF GOODS SOLD": ["Cost of Sales", "Gross Profit"],
    "EXPENSES": [
        "Expense",
        "Net Ordinary Income",
        "Net Income",
        "Other Income and Expenses",
    ],
}


@dataclass
class ReportSettings:
    """Rendering and rollup constants."""
    # Account whose rolled value is the percent-of-income denominator
    income_account: str = field(
        default_factory=lambda: os.getenv("REPORT_INCOME_ACCOUNT", "Income")
    )
    # Magnitudes below this are treated as zero everywhere
    zero_tolerance: float = 1e-4
    # Display units of indentation per hierarchy level
    indent_step: int = 8
    organisation_name: str = field(
        default_factory=lambda: os.getenv("REPORT_ORGANISATION_NAME", "Yona Solutions")
    )


@dataclass
class AppConfig:
    """Main application configuration."""
    report: ReportSettings = field(default_factory=ReportSettings)

    # Where report traces are written as JSON (disabled when empty)
    trace_export_dir: Optional[str] = field(
        default_factory=lambda: os.getenv("PNL_TRACE_EXPORT_DIR") or None
    )

    # Logging
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))


def get_config() -> AppConfig:
    """Factory function to get application configuration."""
    return AppConfig()
