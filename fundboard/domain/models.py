"""
Domain models for fundboard.

Defines the canonical fund snapshot, the closed set of category filter tokens,
result provenance and the result envelope handed to the presentation layer.
Serialization through `FundRecord.model_dump(by_alias=True)` yields the
camelCase shape the dashboard consumes.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Tuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from fundboard.domain.errors import UnknownCategoryError

INVESTMENT_FUND_LABEL = "Yatırım Fonu"

RETURN_FIELDS: Tuple[str, ...] = (
    "daily_return",
    "weekly_return",
    "monthly_return",
    "three_month_return",
    "six_month_return",
    "ytd_return",
    "yearly_return",
    "three_year_return",
)


class FundRecord(BaseModel):
    """
    Latest snapshot of a single fund. `code` is the natural key.
    """

    code: str = Field(..., min_length=1, description="TEFAS fund code.")
    title: str = Field("", description="Display name.")
    category: str = Field(INVESTMENT_FUND_LABEL, description="Coarse classification label.")
    price: float = Field(0.0, ge=0, description="Latest unit value.")
    daily_return: float = 0.0
    weekly_return: float = 0.0
    monthly_return: float = 0.0
    three_month_return: float = 0.0
    six_month_return: float = 0.0
    ytd_return: float = 0.0
    yearly_return: float = 0.0
    three_year_return: float = 0.0
    fund_size: float = Field(0.0, ge=0)
    investor_count: int = Field(0, ge=0)

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )


class FundCategory(str, Enum):
    """Request-time category filter tokens."""

    ALL = "all"
    EQUITY = "equity"
    GOLD = "gold"
    BOND = "bond"
    MIXED = "mixed"

    @property
    def label(self) -> str:
        return _CATEGORY_LABELS[self]

    @classmethod
    def parse(cls, token: "FundCategory | str | None", strict: bool = True) -> "FundCategory":
        """
        Resolve a token (enum member, value or Turkish label, case-insensitive).

        Unknown tokens raise UnknownCategoryError when `strict`, otherwise map to ALL.
        """
        if token is None:
            return cls.ALL
        if isinstance(token, cls):
            return token
        needle = str(token).strip().casefold()
        for member in cls:
            if needle in (member.value, member.name.casefold(), member.label.casefold()):
                return member
        if strict:
            choices = ", ".join(m.value for m in cls)
            raise UnknownCategoryError(f"Unknown fund category '{token}'. Expected one of: {choices}")
        return cls.ALL


_CATEGORY_LABELS = {
    FundCategory.ALL: "Tümü",
    FundCategory.EQUITY: "Hisse Senedi",
    FundCategory.GOLD: "Altın",
    FundCategory.BOND: "Borçlanma Araçları",
    FundCategory.MIXED: "Karma & Değişken",
}


class Provenance(str, Enum):
    """Which acquisition tier produced a result. Never persisted."""

    LIVE = "live"
    PROXIED = "proxied"
    CACHED = "cached"

    @property
    def is_stale(self) -> bool:
        return self is Provenance.CACHED


class FetchResult(BaseModel):
    """Uniform result of one acquisition: records plus their provenance."""

    records: Tuple[FundRecord, ...]
    provenance: Provenance
    tier: str = Field("", description="Name of the tier that produced the records.")

    model_config = ConfigDict(frozen=True)

    def codes(self) -> List[str]:
        return [r.code for r in self.records]

    def to_payload(self) -> Dict[str, Any]:
        """Client-visible contract: {"data": [...camelCase records], "source": provenance}."""
        return {
            "data": [r.model_dump(by_alias=True) for r in self.records],
            "source": self.provenance.value,
        }


__all__ = [
    "FetchResult",
    "FundCategory",
    "FundRecord",
    "INVESTMENT_FUND_LABEL",
    "Provenance",
    "RETURN_FIELDS",
]
