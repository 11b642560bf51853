"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  LEAD POOL - Company policy (tenant receiving platform leads)                ║
║                                                                              ║
║  Loaded from loosely-typed company documents.                                ║
║  Invalid or missing fields fall back to safe defaults:                       ║
║  - daily_quota = 0                                                           ║
║  - is_active = False                                                         ║
║  - distribution_interval_hours = DEFAULT_INTERVAL_HOURS                      ║
║  A document without id is rejected (counted as ignored by callers).          ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

from typing import Optional, Dict, Any
from pydantic import BaseModel, ConfigDict, Field, AliasChoices, field_validator, ValidationError

from config import DEFAULT_INTERVAL_HOURS


def _to_non_negative_int(value, default: int) -> int:
    if isinstance(value, bool):
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number >= 0 else default


class CompanyPolicy(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str = Field(min_length=1)
    company_name: str = Field(default="", validation_alias=AliasChoices("company_name", "companyName", "name"))
    slug: str = Field(default="", validation_alias=AliasChoices("slug", "appSlug"))
    is_active: bool = Field(default=False, validation_alias=AliasChoices("is_active", "isActive"))
    daily_quota: int = Field(default=0, validation_alias=AliasChoices("daily_quota", "dailyQuota"))
    distribution_interval_hours: int = Field(
        default=DEFAULT_INTERVAL_HOURS,
        validation_alias=AliasChoices("distribution_interval_hours", "distributionIntervalHours"),
    )

    @field_validator("id", mode="before")
    @classmethod
    def _id(cls, v):
        if isinstance(v, (int, str)) and not isinstance(v, bool):
            return str(v).strip()
        return v

    @field_validator("company_name", "slug", mode="before")
    @classmethod
    def _text(cls, v):
        return v if isinstance(v, str) else ""

    @field_validator("is_active", mode="before")
    @classmethod
    def _active(cls, v):
        # Only a real boolean true activates a company
        return v is True

    @field_validator("daily_quota", mode="before")
    @classmethod
    def _quota(cls, v):
        return _to_non_negative_int(v, 0)

    @field_validator("distribution_interval_hours", mode="before")
    @classmethod
    def _interval(cls, v):
        hours = _to_non_negative_int(v, DEFAULT_INTERVAL_HOURS)
        return hours or DEFAULT_INTERVAL_HOURS

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> Optional["CompanyPolicy"]:
        """Returns None for malformed documents (no usable id)."""
        if not isinstance(doc, dict):
            return None
        try:
            return cls.model_validate(doc)
        except ValidationError:
            return None
