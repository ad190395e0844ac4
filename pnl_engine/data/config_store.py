"""
Configuration Store Adapter

Loads the account configuration, section layout and ledger fetches from
JSON or YAML files. JSON is a subset of YAML, so both are read with
`yaml.safe_load`.
"""
import logging
from pathlib import Path
from typing import Any, Union

import yaml

from pnl_engine.core.error_taxonomy import ConfigError, ErrorCategory
from pnl_engine.core.section_renderer import SectionConfig
from pnl_engine.data.account_hierarchy import AccountConfig
from pnl_engine.data.ledger import LedgerTable

logger = logging.getLogger(__name__)

SUPPORTED_SUFFIXES = (".json", ".yaml", ".yml")


def load_document(path: Union[str, Path]) -> Any:
    """
    Read one JSON/YAML file.

    Raises:
        ConfigError: if the file is missing, unreadable, malformed or has an
            unsupported extension
    """
    path = Path(path)
    if path.suffix.lower() not in SUPPORTED_SUFFIXES:
        raise ConfigError(
            f"Unsupported configuration file type {path.suffix!r}: {path}",
            context={"path": str(path)},
        )

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(
            f"Cannot read {path}: {e}",
            category=ErrorCategory.CONFIG_FILE_UNREADABLE,
            context={"path": str(path)},
        ) from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Malformed configuration in {path}: {e}", context={"path": str(path)}) from e

    logger.info(f"Loaded {path.name}")
    return data


def load_account_config(path: Union[str, Path], validate: bool = True) -> AccountConfig:
    """Load an account configuration; checked for cycles unless `validate` is False."""
    config = AccountConfig.from_dict(load_document(path) or {})
    if validate:
        config.validate()
    logger.debug(f"Account configuration has {len(config)} accounts")
    return config


def load_section_config(path: Union[str, Path]) -> SectionConfig:
    return SectionConfig.from_dict(load_document(path) or {})


def load_ledger_table(path: Union[str, Path]) -> LedgerTable:
    """Load a columnar `{Account, Value, Scenario}` fetch saved to disk."""
    data = load_document(path)
    if data is not None and not isinstance(data, dict):
        raise ConfigError(
            f"Ledger file {path} must hold a mapping of columns",
            context={"path": str(path)},
        )
    return LedgerTable.from_columns(data)
