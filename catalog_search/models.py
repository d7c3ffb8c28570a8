"""Request/response payloads and the per-request search outcome."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field

from .config import settings
from .errors import ServiceUnavailable


class SortMode(str, Enum):
    RELEVANCE = "relevance"
    NAME = "name"
    EXTERNAL_ID = "external_id"
    POPULARITY = "popularity"

    @classmethod
    def parse(cls, raw: Any) -> "SortMode":
        value = str(raw or "").strip()
        if value == "externalId":
            return cls.EXTERNAL_ID
        try:
            return cls(value.lower())
        except ValueError:
            return cls.RELEVANCE


class SearchSource(str, Enum):
    ENGINE = "engine"
    RELATIONAL = "relational"
    RELATIONAL_FALLBACK = "relational_fallback"


def _as_int(raw: Any, default: int) -> int:
    try:
        return int(raw)
    except (TypeError, ValueError):
        return default


class SearchRequest(BaseModel):
    """Validated, immutable search parameters."""

    model_config = ConfigDict(frozen=True)

    query: str = Field("", description="Search query string, may be empty for listings")
    page: int = Field(1, ge=1)
    limit: int = Field(settings.default_limit, ge=1, le=settings.max_limit)
    city_id: int = 1
    sort: SortMode = SortMode.RELEVANCE
    user_id: str | None = None

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> "SearchRequest":
        """Build a request from raw query parameters, clamping bad values."""

        user_id = params.get("user_id")
        return cls(
            query=str(params.get("q") or "").strip(),
            page=max(1, _as_int(params.get("page"), 1)),
            limit=min(settings.max_limit, max(1, _as_int(params.get("limit"), settings.default_limit))),
            city_id=_as_int(params.get("city_id"), 1),
            sort=SortMode.parse(params.get("sort")),
            user_id=str(user_id) if user_id is not None else None,
        )

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def as_params(self) -> dict:
        return {
            "q": self.query,
            "page": self.page,
            "limit": self.limit,
            "city_id": self.city_id,
            "sort": self.sort.value,
            "user_id": self.user_id,
        }


class SearchData(BaseModel):
    products: list[dict[str, Any]]
    total: int
    page: int
    limit: int
    source: str | None = None
    diagnostics: dict[str, Any] = Field(default_factory=dict)
    search_variants: list[str] | None = None
    max_score: float | None = None


class SearchResponse(BaseModel):
    success: bool
    data: SearchData
    error: str | None = None
    error_code: str | None = None


@dataclass
class SearchOutcome:
    """Everything one request produced; ``source`` is ``None`` only on total failure."""

    items: list[dict]
    total: int
    page: int
    limit: int
    source: SearchSource | None
    diagnostics: dict = field(default_factory=dict)
    search_variants: tuple[str, ...] = ()
    max_score: float | None = None
    error: ServiceUnavailable | None = None

    @property
    def served(self) -> bool:
        return self.source is not None

    def to_payload(self) -> dict:
        if not self.served:
            failure = self.error or ServiceUnavailable("Search service temporarily unavailable")
            return {
                "success": False,
                "error": str(failure),
                "error_code": failure.error_code,
                "data": {
                    "products": [],
                    "total": 0,
                    "page": self.page,
                    "limit": self.limit,
                    "diagnostics": self.diagnostics,
                },
            }
        data: dict[str, Any] = {
            "products": self.items,
            "total": self.total,
            "page": self.page,
            "limit": self.limit,
            "source": self.source.value,
            "diagnostics": self.diagnostics,
        }
        if self.search_variants:
            data["search_variants"] = list(self.search_variants)
        if self.max_score is not None:
            data["max_score"] = self.max_score
        return {"success": True, "data": data}
