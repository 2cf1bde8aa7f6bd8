"""Request-level entry point: validate -> cache -> search -> cache.

KnowledgeService owns no global state. The store and (optional) cache are
passed in by whoever serves requests, and ``close()`` tears the cache down.

Cache keys combine the normalized query with the store's ``generation``
counter, so results computed before a store mutation are never served
after it; they simply age out of the LRU.
"""

from __future__ import annotations

import copy
import logging
import time

from mushcode_kb.cache import LRUCache
from mushcode_kb.errors import ValidationError
from mushcode_kb.models import DIFFICULTIES, EXAMPLES, LEARNING_PATHS
from mushcode_kb.search import (
    DEFAULT_MAX_INPUT_LENGTH,
    MAX_LIMIT,
    SearchQuery,
    SearchResult,
    search,
    validate_query,
)
from mushcode_kb.store import KnowledgeStore

logger = logging.getLogger(__name__)

MAX_TOPIC_LENGTH = 200
STEP_EXAMPLE_LIMIT = 3


class KnowledgeService:
    def __init__(
        self,
        store: KnowledgeStore,
        cache: LRUCache[SearchResult] | None = None,
        cache_ttl: float | None = None,
        max_input_length: int = DEFAULT_MAX_INPUT_LENGTH,
    ):
        self.store = store
        self.cache = cache
        self.cache_ttl = cache_ttl
        self.max_input_length = max_input_length

    # ── Search ────────────────────────────────────────────────────

    def search(self, request: dict) -> SearchResult:
        """Validate a wire-format request and return ranked matches.

        Raises ValidationError before touching the store or cache.
        """
        query = validate_query(request, max_input_length=self.max_input_length)
        return self.search_query(query)

    def search_query(self, query: SearchQuery) -> SearchResult:
        if self.cache is None:
            return search(self.store, query)

        key = f"{self.store.generation}:{query.cache_key()}"
        # Callers get their own copy; the cached entry is never shared
        cached = self.cache.get(key)
        if cached is not None:
            return copy.deepcopy(cached)

        result = search(self.store, query)
        self.cache.set(key, copy.deepcopy(result), ttl=self.cache_ttl)
        return result

    # ── Example retrieval ─────────────────────────────────────────

    def get_examples(
        self,
        topic: str,
        difficulty: str | None = None,
        server_type: str | None = None,
        category: str | None = None,
        max_results: int = 10,
        include_learning_path: bool = True,
    ) -> dict:
        """Find examples for a topic, optionally with a learning path.

        The learning path is a stored path whose name, description or id
        contains the topic; failing that, one is generated from the found
        examples grouped by difficulty.
        """
        if not isinstance(topic, str) or not topic.strip():
            raise ValidationError("topic is required and must be a non-empty string",
                                  field="topic")
        topic = topic.strip()
        if len(topic) > MAX_TOPIC_LENGTH:
            raise ValidationError(f"topic is too long (max {MAX_TOPIC_LENGTH} characters)",
                                  field="topic")
        if isinstance(max_results, bool) or not isinstance(max_results, int) \
                or not 1 <= max_results <= MAX_LIMIT:
            raise ValidationError(f"max_results must be an integer between 1 and {MAX_LIMIT}",
                                  field="max_results")

        started = time.perf_counter()
        request = {
            "query": topic,
            "difficulty": difficulty,
            "serverType": server_type,
            "category": category,
            "fuzzyMatch": True,
            "limit": max_results,
            "includePatterns": False,
        }
        result = self.search({k: v for k, v in request.items() if v is not None})

        examples = []
        for match in result.examples:
            record = self.store.get(EXAMPLES, match.id)
            if record is not None:
                examples.append((record, match.relevance))

        learning_path = []
        if include_learning_path:
            learning_path = self._learning_path(topic, [r for r, _ in examples])

        filters = [f"{name}: {value}" for name, value in (
            ("difficulty", difficulty), ("server", server_type), ("category", category),
        ) if value]
        filters.append(f"max_results: {max_results}")

        return {
            "examples": examples,
            "learning_path": learning_path,
            "total_found": result.total_results,
            "query": topic,
            "filters_applied": filters,
            "execution_time_ms": int((time.perf_counter() - started) * 1000),
        }

    def _learning_path(self, topic: str, examples: list) -> list[dict]:
        topic_lower = topic.lower()
        for path in self.store.all(LEARNING_PATHS):
            if (topic_lower in path.name.lower()
                    or topic_lower in path.description.lower()
                    or topic_lower in path.id.lower()):
                logger.debug("Using stored learning path %s for %r", path.id, topic)
                return [
                    {
                        "step_number": step.step_number,
                        "title": step.title,
                        "description": step.description,
                        "example_ids": list(step.example_ids),
                        "objectives": list(step.objectives),
                    }
                    for step in path.steps
                ]

        levels = {
            "beginner": (
                f"Introduction to {topic}",
                f"Learn the basics of {topic} with simple examples",
                [f"Understand basic {topic} concepts", "Practice with simple examples"],
            ),
            "intermediate": (
                f"Intermediate {topic}",
                f"Explore more complex {topic} patterns and techniques",
                [f"Apply {topic} in practical scenarios",
                 "Understand common patterns and best practices"],
            ),
            "advanced": (
                f"Advanced {topic}",
                f"Master advanced {topic} techniques and optimization",
                [f"Implement complex {topic} solutions",
                 "Optimize for performance and maintainability"],
            ),
        }
        steps = []
        for level in DIFFICULTIES:
            ids = [e.id for e in examples if e.difficulty == level][:STEP_EXAMPLE_LIMIT]
            if not ids:
                continue
            title, description, objectives = levels[level]
            steps.append({
                "step_number": len(steps) + 1,
                "title": title,
                "description": description,
                "example_ids": ids,
                "objectives": objectives,
            })
        return steps

    # ── Lifecycle ─────────────────────────────────────────────────

    def stats(self) -> dict:
        return {
            "knowledge": self.store.stats().to_dict(),
            "cache": self.cache.stats().to_dict() if self.cache is not None else None,
        }

    def close(self) -> None:
        if self.cache is not None:
            self.cache.destroy()
