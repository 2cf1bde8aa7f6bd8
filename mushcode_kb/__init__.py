"""MUSHCODE knowledge store, lexical search engine and LRU/TTL search cache."""

from mushcode_kb.cache import CacheManager, CacheStats, LRUCache
from mushcode_kb.errors import KnowledgeError, ValidationError
from mushcode_kb.models import Dialect, Example, LearningPath, Pattern, SecurityRule
from mushcode_kb.search import SearchQuery, SearchResult, search, validate_query
from mushcode_kb.service import KnowledgeService
from mushcode_kb.store import KnowledgeStore

__all__ = [
    "CacheManager",
    "CacheStats",
    "LRUCache",
    "KnowledgeError",
    "ValidationError",
    "Dialect",
    "Example",
    "LearningPath",
    "Pattern",
    "SecurityRule",
    "SearchQuery",
    "SearchResult",
    "search",
    "validate_query",
    "KnowledgeService",
    "KnowledgeStore",
]
