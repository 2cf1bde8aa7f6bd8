"""Populate a KnowledgeStore from JSON data files.

Expected layout of the data directory (any file may be absent):

    patterns.json         list of pattern objects
    examples.json         list of example objects
    security-rules.json   list of security rule objects
    dialects.json         list of dialect objects
    learning-paths.json   list of learning path objects
    metadata.json         {"version": ..., "sources": [...]}

Missing or unreadable files load nothing for that variant. Individual
records that fail to build are skipped with a warning.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from mushcode_kb.models import (
    DIALECTS,
    EXAMPLES,
    LEARNING_PATHS,
    PATTERNS,
    SECURITY_RULES,
    from_dict,
)
from mushcode_kb.store import KnowledgeStore

logger = logging.getLogger(__name__)

DATA_FILES = {
    PATTERNS: "patterns.json",
    DIALECTS: "dialects.json",
    SECURITY_RULES: "security-rules.json",
    EXAMPLES: "examples.json",
    LEARNING_PATHS: "learning-paths.json",
}
METADATA_FILE = "metadata.json"


def _load_json(path: Path) -> dict | list | None:
    """Load a JSON file, returning None when missing or invalid."""
    if not path.exists():
        logger.debug("Knowledge file %s not present", path)
        return None
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Could not load %s: %s", path, e)
        return None


def load_records(variant: str, path: Path) -> list:
    """Build the records of one variant from a JSON list file."""
    data = _load_json(path)
    if data is None:
        return []
    if not isinstance(data, list):
        logger.warning("Expected a list in %s, got %s", path, type(data).__name__)
        return []

    records = []
    for i, item in enumerate(data):
        if not isinstance(item, dict):
            logger.warning("Skipping %s[%d]: not an object", path.name, i)
            continue
        try:
            records.append(from_dict(variant, item))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Skipping %s[%d]: %s", path.name, i, e)
    return records


def load_knowledge(data_dir: Path | str,
                   store: KnowledgeStore | None = None) -> KnowledgeStore:
    """Load every data file under ``data_dir`` into ``store`` (or a new one)."""
    data_dir = Path(data_dir)
    store = store if store is not None else KnowledgeStore()

    if not data_dir.is_dir():
        logger.warning("Knowledge directory %s does not exist; store left empty", data_dir)
        return store

    counts = {}
    for variant, filename in DATA_FILES.items():
        counts[variant] = store.add_all(load_records(variant, data_dir / filename))

    metadata = _load_json(data_dir / METADATA_FILE)
    if isinstance(metadata, dict):
        if metadata.get("version"):
            store.version = str(metadata["version"])
        if isinstance(metadata.get("sources"), list):
            store.sources = [str(s) for s in metadata["sources"]]

    logger.info(
        "Loaded knowledge from %s: %s",
        data_dir, ", ".join(f"{n} {v}" for v, n in counts.items()),
    )
    return store
