"""In-memory knowledge store with secondary indexes.

Records live in one primary map per variant, keyed by id. Secondary
indexes (category, server compatibility, difficulty, severity) are inverted
indexes holding only ids, maintained by the single ``add`` code path:

    store = KnowledgeStore()
    store.add(pattern)
    store.by_category(PATTERNS, "function")   # -> [Pattern, ...]

Invariants:
  - every id in an index bucket resolves to a record in the primary map,
    and every record appears in exactly the buckets its fields name;
  - re-adding an existing id replaces the record in place, keeping its
    first-insertion position, and moves it only between the buckets whose
    values changed; bucket order always follows primary insertion order.

The store is not internally synchronized. Concurrent writers need an
external lock around ``add``/``remove``/``clear``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from mushcode_kb.models import (
    DIALECTS,
    DIFFICULTIES,
    EXAMPLE_CATEGORIES,
    EXAMPLES,
    LEARNING_PATHS,
    PATTERN_CATEGORIES,
    PATTERNS,
    SECURITY_CATEGORIES,
    SECURITY_RULES,
    SERVER_TYPES,
    SEVERITIES,
    VARIANTS,
    utc_now,
    variant_of,
)

logger = logging.getLogger(__name__)

STORE_VERSION = "1.0.0"

# variant -> index name -> (record attribute, values pre-created on reset)
INDEX_SCHEMA: dict[str, dict[str, tuple[str, tuple[str, ...]]]] = {
    PATTERNS: {
        "category": ("category", PATTERN_CATEGORIES),
        "server": ("server_compatibility", SERVER_TYPES),
        "difficulty": ("difficulty", DIFFICULTIES),
    },
    EXAMPLES: {
        "category": ("category", EXAMPLE_CATEGORIES),
        "server": ("server_compatibility", SERVER_TYPES),
        "difficulty": ("difficulty", DIFFICULTIES),
    },
    SECURITY_RULES: {
        "category": ("category", SECURITY_CATEGORIES),
        "server": ("affected_servers", SERVER_TYPES),
        "severity": ("severity", SEVERITIES),
    },
    LEARNING_PATHS: {
        "difficulty": ("difficulty", DIFFICULTIES),
    },
    DIALECTS: {},
}


class InvertedIndex:
    """Classification value -> ordered set of record ids."""

    def __init__(self, known_values: tuple[str, ...] = ()):
        self._buckets: dict[str, dict[str, None]] = {}
        self.reset(known_values)

    def add(self, value: str, record_id: str) -> None:
        self._buckets.setdefault(value, {})[record_id] = None

    def discard(self, value: str, record_id: str) -> None:
        bucket = self._buckets.get(value)
        if bucket is not None:
            bucket.pop(record_id, None)

    def replace(self, value: str, record_ids) -> None:
        self._buckets[value] = dict.fromkeys(record_ids)

    def ids(self, value: str) -> tuple[str, ...]:
        return tuple(self._buckets.get(value, ()))

    def size(self, value: str) -> int:
        return len(self._buckets.get(value, ()))

    def values(self) -> list[str]:
        return list(self._buckets)

    def reset(self, known_values: tuple[str, ...] = ()) -> None:
        self._buckets = {value: {} for value in known_values}


def _field_values(record, attr: str) -> list[str]:
    """Index keys a record contributes for one attribute (deduplicated)."""
    value = getattr(record, attr, None)
    if value is None:
        return []
    if isinstance(value, (list, tuple, set, frozenset)):
        return list(dict.fromkeys(value))
    return [value]


class _Collection:
    """Primary map plus the secondary indexes for one variant."""

    def __init__(self, variant: str):
        self.variant = variant
        self.schema = INDEX_SCHEMA[variant]
        self.records: dict[str, object] = {}
        self.indexes = {
            name: InvertedIndex(known) for name, (_attr, known) in self.schema.items()
        }

    def insert(self, record) -> bool:
        """Insert or replace. Returns True when an existing id was replaced.

        A replaced record keeps its original position. Only buckets whose
        membership changed are touched; gained buckets are rebuilt so they
        stay in primary order.
        """
        # Computed up front so a bad field value leaves the store untouched
        new_values = {
            name: _field_values(record, attr) for name, (attr, _known) in self.schema.items()
        }
        old = self.records.get(record.id)
        self.records[record.id] = record
        if old is None:
            for name, values in new_values.items():
                for value in values:
                    self.indexes[name].add(value, record.id)
            return False

        for name, (attr, _known) in self.schema.items():
            old_values = set(_field_values(old, attr))
            for value in old_values.difference(new_values[name]):
                self.indexes[name].discard(value, record.id)
            for value in new_values[name]:
                if value not in old_values:
                    self._rebuild_bucket(name, attr, value)
        return True

    def _rebuild_bucket(self, index_name: str, attr: str, value: str) -> None:
        ids = [
            rid for rid, rec in self.records.items() if value in _field_values(rec, attr)
        ]
        self.indexes[index_name].replace(value, ids)

    def delete(self, record_id: str) -> bool:
        old = self.records.pop(record_id, None)
        if old is None:
            return False
        for name, (attr, _known) in self.schema.items():
            for value in _field_values(old, attr):
                self.indexes[name].discard(value, record_id)
        return True

    def lookup(self, index_name: str, value: str) -> list:
        index = self.indexes.get(index_name)
        if index is None:
            return []
        return [self.records[rid] for rid in index.ids(value)]

    def reset(self) -> None:
        self.records.clear()
        for name, (_attr, known) in self.schema.items():
            self.indexes[name].reset(known)


@dataclass
class StoreStats:
    patterns: int
    dialects: int
    security_rules: int
    examples: int
    learning_paths: int
    last_updated: datetime
    version: str

    def to_dict(self) -> dict:
        return {
            "patterns": self.patterns,
            "dialects": self.dialects,
            "securityRules": self.security_rules,
            "examples": self.examples,
            "learningPaths": self.learning_paths,
            "lastUpdated": self.last_updated.isoformat(),
            "version": self.version,
        }


class KnowledgeStore:
    """Owns every knowledge record and the indexes derived from them."""

    def __init__(self, version: str = STORE_VERSION):
        self.version = version
        self.sources: list[str] = ["mushcode.com"]
        self.last_updated = utc_now()
        # Bumped on every mutation; lets caches key results by store state.
        self.generation = 0
        self._collections = {variant: _Collection(variant) for variant in VARIANTS}

    # ── Writes ────────────────────────────────────────────────────

    def add(self, record) -> None:
        """Insert or replace a record and update its secondary indexes."""
        variant = variant_of(record)
        replaced = self._collections[variant].insert(record)
        self._mark_updated()
        logger.debug(
            "%s %s/%s", "Replaced" if replaced else "Added", variant, record.id,
        )

    def add_all(self, records) -> int:
        count = 0
        for record in records:
            self.add(record)
            count += 1
        return count

    def remove(self, variant: str, record_id: str) -> bool:
        """Delete one record and its index entries. Returns False if absent."""
        collection = self._collections.get(variant)
        if collection is None or not collection.delete(record_id):
            return False
        self._mark_updated()
        logger.debug("Removed %s/%s", variant, record_id)
        return True

    def clear(self) -> None:
        """Empty the store and recreate empty buckets for every known value."""
        for collection in self._collections.values():
            collection.reset()
        self._mark_updated()
        logger.info("Knowledge store cleared")

    def _mark_updated(self) -> None:
        self.last_updated = utc_now()
        self.generation += 1

    # ── Reads ─────────────────────────────────────────────────────

    def get(self, variant: str, record_id: str):
        """Return the record, or None when the id (or variant) is unknown."""
        collection = self._collections.get(variant)
        if collection is None:
            return None
        return collection.records.get(record_id)

    def all(self, variant: str) -> list:
        collection = self._collections.get(variant)
        if collection is None:
            return []
        return list(collection.records.values())

    def count(self, variant: str) -> int:
        collection = self._collections.get(variant)
        return len(collection.records) if collection else 0

    def by_category(self, variant: str, category: str) -> list:
        return self._lookup(variant, "category", category)

    def by_server(self, variant: str, server: str) -> list:
        return self._lookup(variant, "server", server)

    def by_difficulty(self, variant: str, difficulty: str) -> list:
        return self._lookup(variant, "difficulty", difficulty)

    def by_severity(self, severity: str) -> list:
        return self._lookup(SECURITY_RULES, "severity", severity)

    def _lookup(self, variant: str, index_name: str, value: str) -> list:
        collection = self._collections.get(variant)
        if collection is None:
            return []
        return collection.lookup(index_name, value)

    def index_ids(self, variant: str, index_name: str, value: str) -> tuple[str, ...]:
        """Ids in one index bucket, in insertion order."""
        collection = self._collections.get(variant)
        if collection is None or index_name not in collection.indexes:
            return ()
        return collection.indexes[index_name].ids(value)

    def index_values(self, variant: str, index_name: str) -> list[str]:
        collection = self._collections.get(variant)
        if collection is None or index_name not in collection.indexes:
            return []
        return collection.indexes[index_name].values()

    def bucket_size(self, variant: str, index_name: str, value: str) -> int:
        collection = self._collections.get(variant)
        if collection is None or index_name not in collection.indexes:
            return 0
        return collection.indexes[index_name].size(value)

    def stats(self) -> StoreStats:
        return StoreStats(
            patterns=self.count(PATTERNS),
            dialects=self.count(DIALECTS),
            security_rules=self.count(SECURITY_RULES),
            examples=self.count(EXAMPLES),
            learning_paths=self.count(LEARNING_PATHS),
            last_updated=self.last_updated,
            version=self.version,
        )
