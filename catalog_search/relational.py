"""Relational fallback search over the catalog tables.

Used for plain listings (no query) and whenever the search engine is skipped
or fails. Matching is literal (``=``/``LIKE``) over every query variant from
:mod:`catalog_search.variants`; ranking is a fixed tier table computed against
the original query only.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from time import perf_counter
from typing import Any, Dict, List, Tuple

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from .errors import RelationalRequestFailed
from .models import SortMode
from .variants import generate_variants

logger = logging.getLogger(__name__)

SELECT_COLUMNS = """
    p.product_id, p.external_id, p.sku, p.name, p.description,
    p.brand_id, p.series_id, p.unit, p.min_sale, p.weight, p.dimensions,
    b.name AS brand_name, s.name AS series_name
"""
FROM_CLAUSE = """
    FROM products p
    LEFT JOIN brands b ON p.brand_id = b.brand_id
    LEFT JOIN series s ON p.series_id = s.series_id
"""
# First matching tier wins.
RELEVANCE_SCORE = """
    CASE
        WHEN p.external_id = :original_q THEN 1000
        WHEN p.sku = :original_q THEN 900
        WHEN p.external_id LIKE :original_prefix ESCAPE '!' THEN 100
        WHEN p.sku LIKE :original_prefix ESCAPE '!' THEN 90
        WHEN p.name = :original_q THEN 80
        WHEN p.name LIKE :original_prefix ESCAPE '!' THEN 50
        WHEN p.name LIKE :original_search ESCAPE '!' THEN 30
        ELSE 1
    END
"""
LISTING_SCORE = "1"
NO_MATCH = "1=0"

ORDER_BY = {
    SortMode.NAME: "p.name ASC, p.product_id DESC",
    SortMode.EXTERNAL_ID: "p.external_id ASC, p.product_id DESC",
    SortMode.POPULARITY: "p.product_id DESC",
}
DEFAULT_LISTING_ORDER = "p.product_id DESC"
DEFAULT_MATCH_ORDER = "relevance_score DESC, p.name ASC, p.product_id DESC"


@dataclass
class RelationalResult:
    items: List[Dict[str, Any]]
    total: int
    variants: Tuple[str, ...] = ()


def like_escape(value: str) -> str:
    """Make ``%``, ``_`` and the escape char itself literal for ``LIKE ... ESCAPE '!'``."""

    return value.replace("!", "!!").replace("%", "!%").replace("_", "!_")


def _variant_clause(index: int) -> str:
    return (
        f"p.external_id = :exact_{index} OR p.sku = :exact_{index}"
        f" OR p.external_id LIKE :prefix_{index} ESCAPE '!' OR p.sku LIKE :prefix_{index} ESCAPE '!'"
        f" OR p.name LIKE :search_{index} ESCAPE '!' OR p.description LIKE :search_{index} ESCAPE '!'"
        f" OR b.name LIKE :search_{index} ESCAPE '!'"
    )


def build_match_condition(query: str) -> Tuple[str, Dict[str, Any], Tuple[str, ...]]:
    """Return the WHERE condition, its bound parameters and the variants used."""

    # An empty variant would turn into LIKE '%%' and match every row.
    variants = tuple(variant for variant in generate_variants(query) if variant)
    clauses: List[str] = []
    params: Dict[str, Any] = {}
    for index, variant in enumerate(variants):
        literal = like_escape(variant)
        clauses.append(f"({_variant_clause(index)})")
        params[f"exact_{index}"] = variant
        params[f"prefix_{index}"] = f"{literal}%"
        params[f"search_{index}"] = f"%{literal}%"
    return " OR ".join(clauses) or NO_MATCH, params, variants


def order_clause(sort: SortMode, has_query: bool) -> str:
    if sort in ORDER_BY:
        return ORDER_BY[sort]
    return DEFAULT_MATCH_ORDER if has_query else DEFAULT_LISTING_ORDER


class RelationalSearchPath:
    """Listing and multi-variant literal search against the catalog tables."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def search(self, query: str, page: int, limit: int, sort: SortMode = SortMode.RELEVANCE) -> RelationalResult:
        query = (query or "").strip()
        offset = (page - 1) * limit
        params: Dict[str, Any]
        if query:
            condition, params, variants = build_match_condition(query)
            literal = like_escape(query)
            params.update(
                original_q=query,
                original_prefix=f"{literal}%",
                original_search=f"%{literal}%",
            )
            score = RELEVANCE_SCORE
        else:
            condition, params, variants = "1=1", {}, ()
            score = LISTING_SCORE

        count_sql = f"SELECT COUNT(*) {FROM_CLAUSE} WHERE {condition}"
        page_sql = (
            f"SELECT {SELECT_COLUMNS}, {score} AS relevance_score {FROM_CLAUSE}"
            f" WHERE {condition} ORDER BY {order_clause(sort, bool(query))}"
            " LIMIT :limit OFFSET :offset"
        )

        started = perf_counter()
        try:
            # Count and page share one transaction so the total matches the rows.
            with self._engine.connect() as conn, conn.begin():
                total = int(conn.execute(text(count_sql), params).scalar_one())
                rows = conn.execute(text(page_sql), {**params, "limit": limit, "offset": offset}).mappings().all()
        except SQLAlchemyError as exc:
            logger.error("Relational search failed q=%r: %s", query, exc)
            raise RelationalRequestFailed(f"relational search failed: {exc}") from exc

        items = [dict(row) for row in rows]
        for item in items:
            item["relevance_score"] = float(item.get("relevance_score") or 0)
        logger.info(
            "Relational search completed q=%r variants=%s found=%s total=%s took=%.2fms",
            query,
            list(variants),
            len(items),
            total,
            (perf_counter() - started) * 1000,
        )
        return RelationalResult(items=items, total=total, variants=variants)
