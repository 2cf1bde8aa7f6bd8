"""Tool: search_knowledge — Ranked search over MUSHCODE patterns and examples."""

import logging

from mushcode_kb.errors import ValidationError
from mushcode_kb.formatters import format_search_result

logger = logging.getLogger(__name__)


def make_search_knowledge(service):
    """Bind the search_knowledge tool to a KnowledgeService."""

    async def search_knowledge(
        query: str,
        category: str | None = None,
        server_type: str | None = None,
        difficulty: str | None = None,
        tags: list[str] | None = None,
        fuzzy_match: bool = False,
        limit: int | None = None,
    ) -> str:
        """Search the MUSHCODE knowledge base for patterns and examples.

        Args:
            query: Free-text search terms (e.g., 'switch conditional', 'object creation')
            category: Only records in this category (e.g., 'function', 'command', 'building')
            server_type: Only records compatible with this server (e.g., 'PennMUSH', 'TinyMUX')
            difficulty: 'beginner', 'intermediate' or 'advanced'
            tags: Only records carrying at least one of these tags
            fuzzy_match: Match query terms as substrings instead of whole words
            limit: Max combined patterns + examples (1-100)

        Returns:
            Ranked patterns and examples with relevance scores and matched terms.
        """
        request = {
            "query": query,
            "category": category,
            "serverType": server_type,
            "difficulty": difficulty,
            "tags": tags,
            "fuzzyMatch": fuzzy_match,
            "limit": limit,
        }
        try:
            result = service.search({k: v for k, v in request.items() if v is not None})
        except ValidationError as e:
            logger.info("search_knowledge rejected: %s", e.message)
            return e.user_message
        return format_search_result(result, service.store)

    return search_knowledge
