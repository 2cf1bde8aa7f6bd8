"""Lexical relevance search over patterns and examples.

Scoring:
    content = name/title + description + tags, lower-cased
    score   = (# query tokens found in content) / (# query tokens)

A token is "found" when it is a whole word of the content (default) or any
substring of it (``fuzzy_match``). Scores lie in [0, 1]; records scoring 0
are dropped. An empty query has zero tokens and matches nothing.

Structured filters (category, server type, difficulty, tags) are hard
filters: a record failing one is excluded before scoring, never down-ranked.
When a category/server/difficulty filter is present the candidate set comes
from the smallest matching index bucket instead of a full scan.

Ranking is a stable sort on score, so equal scores keep insertion order.
When ``limit`` is set and the combined result count exceeds it, the limit is
split between patterns and examples by their share of the unlimited count
(ceiling for patterns, remainder for examples).
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass, field

from mushcode_kb.errors import ValidationError
from mushcode_kb.models import DIFFICULTIES, EXAMPLES, PATTERNS

logger = logging.getLogger(__name__)

MAX_LIMIT = 100
DEFAULT_MAX_INPUT_LENGTH = 10_000


# ── Query / result types ──────────────────────────────────────────

@dataclass
class SearchQuery:
    query: str
    category: str | None = None
    server_type: str | None = None
    difficulty: str | None = None
    tags: list[str] | None = None
    fuzzy_match: bool = False
    limit: int | None = None
    include_patterns: bool = True
    include_examples: bool = True

    def tokens(self) -> list[str]:
        return tokenize(self.query)

    def cache_key(self) -> str:
        """Normalized key: same tokens + same filters -> same key."""
        return json.dumps(
            {
                "q": " ".join(self.tokens()),
                "category": self.category,
                "server": self.server_type,
                "difficulty": self.difficulty,
                "tags": sorted(set(self.tags)) if self.tags else None,
                "fuzzy": self.fuzzy_match,
                "limit": self.limit,
                "patterns": self.include_patterns,
                "examples": self.include_examples,
            },
            sort_keys=True,
        )


@dataclass
class PatternMatch:
    id: str
    relevance: float
    matched_terms: list[str] = field(default_factory=list)

    @property
    def confidence(self) -> float:
        return self.relevance

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "confidence": self.confidence,
            "relevance": self.relevance,
            "matchedTerms": list(self.matched_terms),
        }


@dataclass
class ExampleMatch:
    id: str
    relevance: float
    matched_terms: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "relevance": self.relevance,
            "matchedTerms": list(self.matched_terms),
        }


@dataclass
class SearchResult:
    patterns: list[PatternMatch] = field(default_factory=list)
    examples: list[ExampleMatch] = field(default_factory=list)
    total_results: int = 0
    execution_time_ms: int = 0

    def to_dict(self) -> dict:
        return {
            "patterns": [m.to_dict() for m in self.patterns],
            "examples": [m.to_dict() for m in self.examples],
            "totalResults": self.total_results,
            "executionTimeMs": self.execution_time_ms,
        }


# ── Scoring ───────────────────────────────────────────────────────

def tokenize(text: str) -> list[str]:
    """Lower-case and split on whitespace."""
    return text.lower().split()


def score_content(content: str, tokens: list[str],
                  fuzzy: bool = False) -> tuple[float, list[str]]:
    """Score content against query tokens.

    Returns (normalized score, tokens that matched). Zero tokens score 0.
    """
    if not tokens:
        return 0.0, []
    content = content.lower()
    if fuzzy:
        matched = [t for t in tokens if t in content]
    else:
        words = set(content.split())
        matched = [t for t in tokens if t in words]
    return len(matched) / len(tokens), matched


def passes_filters(record, query: SearchQuery) -> bool:
    """True when the record satisfies every hard filter in the query."""
    if query.category and record.category != query.category:
        return False
    if query.server_type and query.server_type not in record.server_compatibility:
        return False
    if query.difficulty and record.difficulty != query.difficulty:
        return False
    if query.tags and not any(tag in record.tags for tag in query.tags):
        return False
    return True


def _candidates(store, variant: str, query: SearchQuery) -> list:
    """Records to score, in insertion order, pre-filtered via the indexes."""
    lookups = []
    if query.category:
        lookups.append(("category", query.category, store.by_category))
    if query.server_type:
        lookups.append(("server", query.server_type, store.by_server))
    if query.difficulty:
        lookups.append(("difficulty", query.difficulty, store.by_difficulty))
    if not lookups:
        return store.all(variant)
    _index, value, fetch = min(
        lookups, key=lambda lk: store.bucket_size(variant, lk[0], lk[1])
    )
    return fetch(variant, value)


def _rank(store, variant: str, query: SearchQuery, tokens: list[str]) -> list:
    scored = []
    for record in _candidates(store, variant, query):
        if not passes_filters(record, query):
            continue
        score, matched = score_content(record.searchable_text(), tokens, query.fuzzy_match)
        if score > 0:
            scored.append((record.id, score, matched))
    # list.sort is stable: ties keep insertion order
    scored.sort(key=lambda item: item[1], reverse=True)
    return scored


def search_patterns(store, query: SearchQuery) -> list[PatternMatch]:
    return [
        PatternMatch(id=rid, relevance=score, matched_terms=matched)
        for rid, score, matched in _rank(store, PATTERNS, query, query.tokens())
    ]


def search_examples(store, query: SearchQuery) -> list[ExampleMatch]:
    return [
        ExampleMatch(id=rid, relevance=score, matched_terms=matched)
        for rid, score, matched in _rank(store, EXAMPLES, query, query.tokens())
    ]


def allocate_limit(limit: int | None, n_patterns: int,
                   n_examples: int) -> tuple[int, int]:
    """Split ``limit`` between two result lists by their share of the total.

    Patterns get the ceiling of their proportional share, examples the
    remainder. Returns the counts unchanged when they already fit.
    """
    total = n_patterns + n_examples
    if limit is None or total <= limit:
        return n_patterns, n_examples
    pattern_limit = -(-limit * n_patterns // total)
    return pattern_limit, limit - pattern_limit


def search(store, query: SearchQuery) -> SearchResult:
    """Rank patterns and examples against ``query``."""
    started = time.perf_counter()

    patterns = search_patterns(store, query) if query.include_patterns else []
    examples = search_examples(store, query) if query.include_examples else []
    total = len(patterns) + len(examples)

    pattern_limit, example_limit = allocate_limit(query.limit, len(patterns), len(examples))
    result = SearchResult(
        patterns=patterns[:pattern_limit],
        examples=examples[:example_limit],
        total_results=total,
    )
    result.execution_time_ms = int((time.perf_counter() - started) * 1000)
    logger.debug(
        "search %r: %d patterns, %d examples (of %d) in %dms",
        query.query, len(result.patterns), len(result.examples), total,
        result.execution_time_ms,
    )
    return result


# ── Input validation ──────────────────────────────────────────────

def _optional_str(raw: Mapping, key: str) -> str | None:
    value = raw.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string", field=key)
    return value


def _optional_bool(raw: Mapping, key: str, default: bool) -> bool:
    value = raw.get(key)
    if value is None:
        return default
    if not isinstance(value, bool):
        raise ValidationError(f"{key} must be a boolean", field=key)
    return value


def validate_query(raw: Mapping,
                   max_input_length: int = DEFAULT_MAX_INPUT_LENGTH) -> SearchQuery:
    """Validate a wire-format query request and build a SearchQuery.

    Accepts the request shape ``{query, category?, serverType?, difficulty?,
    tags?, fuzzyMatch?, limit?, includePatterns?, includeExamples?}``.
    Raises ValidationError on any malformed field; nothing is coerced.
    """
    if not isinstance(raw, Mapping):
        raise ValidationError("request must be an object")

    text = raw.get("query")
    if not isinstance(text, str):
        raise ValidationError("query is required and must be a string", field="query")
    if len(text) > max_input_length:
        raise ValidationError(
            f"query is too long (max {max_input_length} characters)", field="query",
        )

    difficulty = _optional_str(raw, "difficulty")
    if difficulty is not None and difficulty not in DIFFICULTIES:
        raise ValidationError(
            f"difficulty must be one of: {', '.join(DIFFICULTIES)}", field="difficulty",
        )

    tags = raw.get("tags")
    if tags is not None:
        if not isinstance(tags, (list, tuple)) or not all(isinstance(t, str) for t in tags):
            raise ValidationError("tags must be a list of strings", field="tags")
        tags = list(tags)

    limit = raw.get("limit")
    if limit is not None:
        # bool is an int subclass; reject it explicitly
        if isinstance(limit, bool) or not isinstance(limit, int):
            raise ValidationError("limit must be an integer", field="limit")
        if not 1 <= limit <= MAX_LIMIT:
            raise ValidationError(f"limit must be between 1 and {MAX_LIMIT}", field="limit")

    return SearchQuery(
        query=text,
        category=_optional_str(raw, "category"),
        server_type=_optional_str(raw, "serverType"),
        difficulty=difficulty,
        tags=tags,
        fuzzy_match=_optional_bool(raw, "fuzzyMatch", False),
        limit=limit,
        include_patterns=_optional_bool(raw, "includePatterns", True),
        include_examples=_optional_bool(raw, "includeExamples", True),
    )
