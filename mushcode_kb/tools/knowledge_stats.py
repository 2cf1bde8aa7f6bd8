"""Tool: knowledge_stats — Record counts and search cache statistics."""

from mushcode_kb.formatters import format_stats


def make_knowledge_stats(service):
    """Bind the knowledge_stats tool to a KnowledgeService."""

    async def knowledge_stats() -> str:
        """Report how many patterns, examples, security rules, dialects and
        learning paths are loaded, plus search cache hit/miss statistics.
        """
        return format_stats(service.stats())

    return knowledge_stats
