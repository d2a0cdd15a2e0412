"""
Response normalization between the TEFAS wire shape, the canonical FundRecord
and Cache Store rows.

The TEFAS comparison endpoint answers with fixed uppercase abbreviation keys
(FONKODU, FIYAT, GUNLUKGETIRI, ...). Missing or null metrics are common for
funds with a short history and default to 0. Store rows use snake_case column
names plus a `last_updated` stamp written at upsert time.
"""

from __future__ import annotations

import math
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional

from pydantic import ValidationError

from fundboard.domain.errors import MalformedResponseError
from fundboard.domain.models import INVESTMENT_FUND_LABEL, FundCategory, FundRecord
from fundboard.utils.logging import get_logger

log = get_logger(__name__)

DATE_FORMAT = "%Y-%m-%d"

# Canonical field -> upstream key
UPSTREAM_FIELDS: Dict[str, str] = {
    "code": "FONKODU",
    "title": "FONUNADI",
    "price": "FIYAT",
    "daily_return": "GUNLUKGETIRI",
    "weekly_return": "HAFTALIKGETIRI",
    "monthly_return": "AYLIKGETIRI",
    "three_month_return": "UCAYLIKGETIRI",
    "six_month_return": "ALTIAYLIKGETIRI",
    "ytd_return": "YILBASI",
    "yearly_return": "YILLIKGETIRI",
    "three_year_return": "UCYILLIKGETIRI",
    "fund_size": "FONTOPLAMDEGER",
    "investor_count": "KISISAYISI",
}

NUMERIC_FIELDS = tuple(f for f in UPSTREAM_FIELDS if f not in ("code", "title"))

STORE_COLUMNS: tuple[str, ...] = (
    "code",
    "title",
    "category",
    *NUMERIC_FIELDS,
    "last_updated",
)

_CATEGORY_CODES = {
    FundCategory.EQUITY: "HYF",
    FundCategory.GOLD: "ALT",
    FundCategory.BOND: "BGT",
}
ALL_CATEGORY_CODE = "TUM"

_STORE_KEYS = {field: field for field in NUMERIC_FIELDS}


def category_code(category: FundCategory) -> str:
    """Upstream `sfontip` code; categories without a dedicated code map to TUM."""
    return _CATEGORY_CODES.get(category, ALL_CATEGORY_CODE)


def request_window(today: Optional[date] = None, days: int = 30) -> tuple[str, str]:
    """Trailing (start, end) window of `days` calendar days ending today, as YYYY-MM-DD."""
    end = today or date.today()
    start = end - timedelta(days=days)
    return start.strftime(DATE_FORMAT), end.strftime(DATE_FORMAT)


def build_request_form(
    category: FundCategory, today: Optional[date] = None, days: int = 30
) -> Dict[str, str]:
    """Form body for the comparison endpoint (also accepted by the trusted proxy)."""
    start, end = request_window(today, days)
    return {
        "calismatipi": "2",
        "fontip": "YAT",
        "sfontip": category_code(category),
        "bastar": start,
        "bittar": end,
        "kurucukod": "",
    }


def _number(value: Any, field: str, code: str) -> float:
    if value is None or value == "":
        return 0.0
    if isinstance(value, bool):
        raise MalformedResponseError(f"Field {field} of fund {code} is not numeric: {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise MalformedResponseError(
            f"Field {field} of fund {code} is not numeric: {value!r}"
        ) from exc
    if not math.isfinite(number):
        raise MalformedResponseError(f"Field {field} of fund {code} is not finite: {value!r}")
    return number


def _numeric_values(source: Mapping[str, Any], keys: Mapping[str, str], code: str) -> Dict[str, Any]:
    values: Dict[str, Any] = {
        field: _number(source.get(keys[field]), field, code) for field in NUMERIC_FIELDS
    }
    values["investor_count"] = int(values["investor_count"])
    return values


def _build_record(values: Dict[str, Any]) -> FundRecord:
    try:
        return FundRecord(**values)
    except ValidationError as exc:
        raise MalformedResponseError(
            f"Fund {values.get('code')!r} failed validation: {exc.error_count()} error(s)"
        ) from exc


def from_upstream(item: Mapping[str, Any]) -> FundRecord:
    """Map one upstream record to a FundRecord; missing metrics default to 0."""
    if not isinstance(item, Mapping):
        raise MalformedResponseError(f"Expected an object per fund, got {type(item).__name__}")
    code = item.get(UPSTREAM_FIELDS["code"])
    if not code or not isinstance(code, str):
        raise MalformedResponseError(f"Fund record without {UPSTREAM_FIELDS['code']}: {dict(item)!r}")

    values: Dict[str, Any] = {
        "code": code.strip(),
        "title": item.get(UPSTREAM_FIELDS["title"]) or "",
        "category": INVESTMENT_FUND_LABEL,
    }
    values.update(_numeric_values(item, UPSTREAM_FIELDS, code))
    return _build_record(values)


def normalize_upstream(items: Iterable[Mapping[str, Any]]) -> List[FundRecord]:
    """
    Map a list of upstream records, keeping the first occurrence of each code.
    """
    records: List[FundRecord] = []
    seen: set[str] = set()
    for item in items:
        record = from_upstream(item)
        if record.code in seen:
            log.warning("Dropping duplicate fund code", extra={"code": record.code})
            continue
        seen.add(record.code)
        records.append(record)
    return records


def to_upstream(record: FundRecord) -> Dict[str, Any]:
    """Inverse of `from_upstream`."""
    return {key: getattr(record, field) for field, key in UPSTREAM_FIELDS.items()}


def to_store_row(record: FundRecord, updated_at: Optional[datetime] = None) -> Dict[str, Any]:
    """Cache Store row for `record`, stamped with the write time (UTC now by default)."""
    row: Dict[str, Any] = record.model_dump()
    row["last_updated"] = (updated_at or datetime.now(timezone.utc)).isoformat()
    return row


def from_store_row(row: Mapping[str, Any]) -> FundRecord:
    """Inverse of `to_store_row`; the `last_updated` stamp is dropped."""
    code = row.get("code")
    if not code:
        raise MalformedResponseError(f"Stored row without code: {dict(row)!r}")
    values: Dict[str, Any] = {
        "code": code,
        "title": row.get("title") or "",
        "category": row.get("category") or INVESTMENT_FUND_LABEL,
    }
    values.update(_numeric_values(row, _STORE_KEYS, code))
    return _build_record(values)


__all__ = [
    "ALL_CATEGORY_CODE",
    "NUMERIC_FIELDS",
    "STORE_COLUMNS",
    "UPSTREAM_FIELDS",
    "build_request_form",
    "category_code",
    "from_store_row",
    "from_upstream",
    "normalize_upstream",
    "request_window",
    "to_store_row",
    "to_upstream",
]
