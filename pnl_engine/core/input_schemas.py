"""
Input Schemas for Report Configuration and Entity Metadata

Provides Pydantic models for validating the payloads handed to the engine by
the configuration store and the data-fetch layer, so that misspelled flags or
wrongly shaped configs fail loudly instead of silently rendering a wrong P&L.
"""
from typing import Annotated, Any, Dict, List, Optional, Tuple, Type, Union
import logging
import math

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    RootModel,
    StringConstraints,
    ValidationError,
    field_validator,
    model_validator,
)

logger = logging.getLogger(__name__)


# Account identifiers are the display labels used as ledger keys
AccountId = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class AccountSettingsSchema(BaseModel):
    """One entry of the account configuration (camelCase as stored)."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    parent: Optional[str] = None
    operational_excluded: bool = Field(False, alias="operationalExcluded")
    display_excluded: bool = Field(False, alias="displayExcluded")
    double_lines: bool = Field(False, alias="doubleLines")
    label: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def empty_entry(cls, data: Any) -> Any:
        # A null entry is an account with no parent and no flags
        return {} if data is None else data

    @field_validator("parent", mode="before")
    @classmethod
    def normalize_parent(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    @field_validator("operational_excluded", "display_excluded", "double_lines", mode="before")
    @classmethod
    def null_flag(cls, v: Any) -> Any:
        return False if v is None else v


class AccountConfigSchema(RootModel[Dict[AccountId, AccountSettingsSchema]]):
    """Mapping of account id to its settings, in configuration order."""


class SectionSpecSchema(BaseModel):
    """Long-form section entry: `{header, accounts}`."""
    model_config = ConfigDict(extra="ignore")

    header: Optional[str] = None
    accounts: List[AccountId] = Field(default_factory=list)

    @field_validator("accounts", mode="before")
    @classmethod
    def null_accounts(cls, v: Any) -> Any:
        return [] if v is None else v


class SectionConfigSchema(RootModel[Dict[str, Union[List[AccountId], SectionSpecSchema]]]):
    """Ordered mapping of section name to its top-level accounts."""

    @model_validator(mode="before")
    @classmethod
    def null_sections(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: ([] if v is None else v) for k, v in data.items()}
        return data


class EntityMetaSchema(BaseModel):
    """Descriptive per-report fields supplied by the data-fetch layer."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type_label: Optional[str] = Field(None, alias="typeLabel")
    entity_name: str = Field("", alias="entityName")
    month_label: Optional[str] = Field(None, alias="monthLabel")
    region_count: Optional[int] = Field(None, alias="regionCount")
    district_count: Optional[int] = Field(None, alias="districtCount")
    facility_count: Optional[int] = Field(None, alias="facilityCount")
    parent_district: Optional[str] = Field(None, alias="parentDistrict")
    actual_census: Optional[float] = Field(None, alias="actualCensus")
    budget_census: Optional[float] = Field(None, alias="budgetCensus")
    start_date_est: Optional[str] = Field(None, alias="startDateEst")
    pl_type: Optional[str] = Field(None, alias="plType")

    @field_validator("entity_name", mode="before")
    @classmethod
    def null_name(cls, v: Any) -> Any:
        return "" if v is None else str(v)

    @field_validator("month_label", "start_date_est", "parent_district", "type_label", "pl_type", mode="before")
    @classmethod
    def stringify(cls, v: Any) -> Optional[str]:
        return None if v is None else str(v)

    @field_validator("region_count", "district_count", "facility_count", mode="before")
    @classmethod
    def lenient_count(cls, v: Any) -> Optional[int]:
        try:
            return None if v is None else int(v)
        except (TypeError, ValueError):
            return None

    @field_validator("actual_census", "budget_census", mode="before")
    @classmethod
    def lenient_census(cls, v: Any) -> Optional[float]:
        try:
            value = None if v is None else float(v)
        except (TypeError, ValueError):
            return None
        return value if value is not None and math.isfinite(value) else None


def validate_payload(
    data: Any,
    schema: Type[BaseModel],
) -> Tuple[bool, Any, List[str]]:
    """
    Validate a raw payload against a Pydantic schema.

    Returns:
        Tuple of (is_valid, parsed_object_or_none, list_of_errors)
    """
    try:
        validated = schema.model_validate(data)
        return True, validated, []
    except ValidationError as e:
        errors = [
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
            for err in e.errors()
        ]
        logger.warning(f"Schema validation failed for {schema.__name__}: {errors}")
        return False, None, errors
