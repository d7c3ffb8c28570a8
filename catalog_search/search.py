"""Ranked product search on top of Elasticsearch."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from time import perf_counter
from typing import Any, Dict, List

from elastic_transport import TransportError
from elasticsearch import ApiError, Elasticsearch

from .config import settings
from .errors import EngineRequestFailed
from .models import SortMode

logger = logging.getLogger(__name__)

HIGHLIGHT_TAGS = {"pre_tags": ["<mark>"], "post_tags": ["</mark>"]}

LISTING_SORT = {
    SortMode.NAME: [{"name.keyword": "asc"}],
    SortMode.EXTERNAL_ID: [{"external_id.keyword": "asc"}],
}
DEFAULT_LISTING_SORT = [{"product_id": "desc"}]
RELEVANCE_SORT = [{"_score": "desc"}, {"has_stock": "desc"}, {"popularity_score": "desc"}]


@dataclass
class EngineResult:
    items: List[Dict[str, Any]]
    total: int
    max_score: float


def _whole_field() -> dict:
    return {"type": "unified", "number_of_fragments": 0, **HIGHLIGHT_TAGS}


def build_highlight() -> Dict[str, Any]:
    return {
        "fields": {
            "name": _whole_field(),
            "external_id": _whole_field(),
            "brand_name": _whole_field(),
            "description": {
                "type": "unified",
                "number_of_fragments": 2,
                "fragment_size": 150,
                **HIGHLIGHT_TAGS,
            },
        },
        "require_field_match": False,
        "fragment_size": 150,
        "max_analyzed_offset": 1000000,
    }


def _relevance_query(query: str) -> Dict[str, Any]:
    should: List[dict] = [
        {
            "bool": {
                "should": [
                    {"term": {"external_id.keyword": {"value": query, "boost": 1000}}},
                    {"term": {"sku.keyword": {"value": query, "boost": 900}}},
                ]
            }
        },
        {"match_phrase": {"name": {"query": query, "boost": 500, "slop": 0}}},
        {"match": {"name": {"query": query, "operator": "and", "boost": 200, "fuzziness": "AUTO"}}},
        {
            "match": {
                "name": {
                    "query": query,
                    "minimum_should_match": "75%",
                    "boost": 100,
                    "fuzziness": "AUTO",
                }
            }
        },
        {"match": {"brand_name": {"query": query, "boost": 80, "fuzziness": "AUTO"}}},
        {"match": {"categories": {"query": query, "boost": 50}}},
        {"wildcard": {"external_id.keyword": {"value": f"*{query}*", "boost": 150}}},
        {"match": {"name.autocomplete": {"query": query, "boost": 60}}},
        {"match": {"search_text": {"query": query, "boost": 30, "fuzziness": "AUTO"}}},
        {
            "nested": {
                "path": "attributes",
                "query": {"match": {"attributes.value": {"query": query, "boost": 40}}},
            }
        },
    ]
    return {
        "function_score": {
            "query": {"bool": {"should": should, "minimum_should_match": 1}},
            # Both factors multiply the text score; a missing popularity
            # becomes log1p(0) and is not allowed to zero the product out.
            "functions": [
                {"filter": {"term": {"has_stock": True}}, "weight": 1.5},
                {
                    "field_value_factor": {
                        "field": "popularity_score",
                        "modifier": "log1p",
                        "factor": 1.2,
                        "missing": 0,
                    }
                },
            ],
            "score_mode": "multiply",
            "boost_mode": "multiply",
        }
    }


def build_es_query(
    query: str,
    page: int,
    limit: int,
    sort: SortMode = SortMode.RELEVANCE,
    timeout: str = settings.es_search_timeout,
) -> Dict[str, Any]:
    query = (query or "").strip()
    body: Dict[str, Any] = {
        "timeout": timeout,
        "size": limit,
        "from": (page - 1) * limit,
        "track_total_hits": True,
        "_source": True,
    }
    if query:
        body["query"] = _relevance_query(query)
        body["highlight"] = build_highlight()
        body["sort"] = RELEVANCE_SORT
    else:
        body["query"] = {"match_all": {}}
        body["sort"] = LISTING_SORT.get(sort, DEFAULT_LISTING_SORT)
    return body


def _parse_total(raw: Any) -> int:
    if isinstance(raw, dict):
        return int(raw.get("value", 0))
    return int(raw or 0)


def parse_response(response: Any) -> EngineResult:
    """Turn a raw search response into products with injected scores/highlights."""

    try:
        hits = response["hits"]
        items: List[Dict[str, Any]] = []
        for hit in hits.get("hits", []):
            product = dict(hit["_source"])
            product["relevance_score"] = float(hit.get("_score") or 0)
            if hit.get("highlight"):
                product["highlights"] = dict(hit["highlight"])
            items.append(product)
        total = _parse_total(hits.get("total"))
        max_score = float(hits.get("max_score") or 0)
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise EngineRequestFailed(f"malformed search response: {exc!r}") from exc
    return EngineResult(items=items, total=total, max_score=max_score)


class EngineSearchPath:
    """Boosted, fuzzy product search against the engine index."""

    def __init__(self, client: Elasticsearch, index: str = settings.es_index) -> None:
        self._client = client
        self._index = index

    def search(self, query: str, page: int, limit: int, sort: SortMode = SortMode.RELEVANCE) -> EngineResult:
        body = build_es_query(query, page, limit, sort)
        logger.debug("ES query payload=%s", body)

        started = perf_counter()
        try:
            response = self._client.search(index=self._index, body=body)
        except (ApiError, TransportError) as exc:
            logger.error("Engine search failed q=%r: %s", query, exc)
            raise EngineRequestFailed(f"engine search failed: {exc}") from exc

        # ObjectApiResponse keeps the decoded JSON in ``body``.
        payload = getattr(response, "body", response)
        if isinstance(payload, dict) and payload.get("timed_out"):
            raise EngineRequestFailed("engine search timed out")
        result = parse_response(payload)
        logger.info(
            "Engine search completed q=%r total=%s returned=%s max_score=%s took=%.2fms",
            query,
            result.total,
            len(result.items),
            result.max_score,
            (perf_counter() - started) * 1000,
        )
        return result
