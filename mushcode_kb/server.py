"""MUSHCODE Knowledge MCP Server — FastMCP entry point.

Exposes the MUSHCODE knowledge base (patterns, examples, security rules,
dialects, learning paths) to Claude via MCP tools:
  search_knowledge  ranked lexical search over patterns and examples
  get_examples      topic examples plus a suggested learning path
  knowledge_stats   record counts and search cache statistics

Run locally:
    python -m mushcode_kb.server
"""

import logging
import sys

from fastmcp import FastMCP

from mushcode_kb.cache import LRUCache
from mushcode_kb.config import Settings
from mushcode_kb.loader import load_knowledge
from mushcode_kb.service import KnowledgeService
from mushcode_kb.tools.get_examples import make_get_examples
from mushcode_kb.tools.knowledge_stats import make_knowledge_stats
from mushcode_kb.tools.search_knowledge import make_search_knowledge

logger = logging.getLogger(__name__)


def create_server(service: KnowledgeService) -> FastMCP:
    """Build a FastMCP server whose tools share one KnowledgeService."""
    mcp = FastMCP(
        "MUSHCODE Knowledge",
        instructions=(
            "MUSHCODE knowledge server — reference data for MUSH/MUX softcode. "
            "search_knowledge ranks code patterns and examples for free-text "
            "queries, with optional category, server type, difficulty and tag "
            "filters. get_examples returns worked examples for a topic plus a "
            "learning path. knowledge_stats reports what is loaded."
        ),
    )
    mcp.tool()(make_search_knowledge(service))
    mcp.tool()(make_get_examples(service))
    mcp.tool()(make_knowledge_stats(service))
    return mcp


def build_service(settings: Settings) -> KnowledgeService:
    """Load the store and wire up the search cache described by settings."""
    store = load_knowledge(settings.data_path)
    cache = None
    if settings.cache_enabled:
        cache = LRUCache(
            max_size=settings.cache_size,
            default_ttl=settings.cache_ttl or None,
            cleanup_interval=settings.cache_sweep_interval or None,
            name="search",
        )
    return KnowledgeService(
        store,
        cache=cache,
        cache_ttl=settings.cache_ttl or None,
        max_input_length=settings.max_input_length,
    )


def main() -> None:
    settings = Settings.from_env()
    # stdout carries the MCP stdio transport; logs go to stderr
    logging.basicConfig(
        level=settings.log_level,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    service = build_service(settings)
    logger.info(
        "Starting MUSHCODE Knowledge server (cache=%s)",
        "on" if service.cache is not None else "off",
    )
    mcp = create_server(service)
    try:
        mcp.run()
    finally:
        service.close()


if __name__ == "__main__":
    main()
