"""Segment a search query into exact phrases, numbers, codes and words."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List

logger = logging.getLogger(__name__)

_QUOTED_RE = re.compile(r'"([^"]+)"')
_WHITESPACE_RE = re.compile(r"\s+")
_TOKEN_SPLIT_RE = re.compile(r"[\s\-_,;.]+")
# "16А", "220V", "2,5мм": digits, optional fraction, optional unit letters.
_NUMERIC_RE = re.compile(r"^[0-9]+([.,][0-9]+)?\s*[A-Za-zА-Яа-яЁё]*$")
# "MVA40-1-016-C": article codes are ASCII and carry at least one digit.
_CODE_RE = re.compile(r"^[A-Za-z0-9\-_.]{3,}$")
_DIGIT_RE = re.compile(r"[0-9]")


@dataclass(frozen=True)
class QueryPlan:
    original: str = ""
    normalized: str = ""
    exact_phrases: FrozenSet[str] = field(default_factory=frozenset)
    numeric_tokens: FrozenSet[str] = field(default_factory=frozenset)
    code_tokens: FrozenSet[str] = field(default_factory=frozenset)
    plain_words: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def is_empty(self) -> bool:
        return not (self.exact_phrases or self.numeric_tokens or self.code_tokens or self.plain_words)

    def to_dict(self) -> Dict[str, object]:
        return {
            "original": self.original,
            "normalized": self.normalized,
            "exact": sorted(self.exact_phrases),
            "numbers": sorted(self.numeric_tokens),
            "codes": sorted(self.code_tokens),
            "words": sorted(self.plain_words),
        }


def classify_token(token: str) -> str:
    """Return ``"numeric"``, ``"code"`` or ``"word"`` for a single token."""

    if _NUMERIC_RE.match(token):
        return "numeric"
    if _CODE_RE.match(token) and _DIGIT_RE.search(token):
        return "code"
    return "word"


def parse_query(query: str) -> QueryPlan:
    """Split ``query`` into the categories of a :class:`QueryPlan`.

    Quoted phrases are taken out first and are not tokenized again. The rest
    is whitespace-collapsed (kept as ``normalized``), split on whitespace and
    ``- _ , ; .`` and each token classified by :func:`classify_token`.
    """

    text = (query or "").strip()
    if not text:
        return QueryPlan(original=text)

    exact = _QUOTED_RE.findall(text)
    if exact:
        text = _QUOTED_RE.sub("", text)

    normalized = _WHITESPACE_RE.sub(" ", text.strip())
    buckets: Dict[str, List[str]] = {"numeric": [], "code": [], "word": []}
    for token in _TOKEN_SPLIT_RE.split(normalized):
        if token:
            buckets[classify_token(token)].append(token)

    plan = QueryPlan(
        original=(query or "").strip(),
        normalized=normalized,
        exact_phrases=frozenset(exact),
        numeric_tokens=frozenset(buckets["numeric"]),
        code_tokens=frozenset(buckets["code"]),
        plain_words=frozenset(buckets["word"]),
    )
    logger.debug("parse_query q=%r plan=%s", query, plan.to_dict())
    return plan
