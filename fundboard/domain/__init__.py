"""
Domain package for fundboard.

Exports the core domain models and the error taxonomy used across the tiers,
the orchestrator and the proxy app. Keep this package focused on data
definitions and validation concerns.
"""

from fundboard.domain.errors import (
    DataUnavailable,
    EmptyResultError,
    FundboardError,
    MalformedResponseError,
    StorageError,
    TierError,
    TierFailure,
    TransportError,
    UnknownCategoryError,
    UpstreamStatusError,
)
from fundboard.domain.models import (
    INVESTMENT_FUND_LABEL,
    RETURN_FIELDS,
    FetchResult,
    FundCategory,
    FundRecord,
    Provenance,
)

__all__ = [
    # Models
    "FetchResult",
    "FundCategory",
    "FundRecord",
    "INVESTMENT_FUND_LABEL",
    "Provenance",
    "RETURN_FIELDS",
    # Errors
    "DataUnavailable",
    "EmptyResultError",
    "FundboardError",
    "MalformedResponseError",
    "StorageError",
    "TierError",
    "TierFailure",
    "TransportError",
    "UnknownCategoryError",
    "UpstreamStatusError",
]
