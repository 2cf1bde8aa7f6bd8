"""Tool: get_examples — Retrieve MUSHCODE examples with a learning path."""

import logging

from mushcode_kb.errors import ValidationError
from mushcode_kb.formatters import format_examples

logger = logging.getLogger(__name__)


def make_get_examples(service):
    """Bind the get_examples tool to a KnowledgeService."""

    async def get_examples(
        topic: str,
        difficulty: str | None = None,
        server_type: str | None = None,
        category: str | None = None,
        max_results: int = 10,
        include_learning_path: bool = True,
    ) -> str:
        """Find MUSHCODE examples for a topic, with a suggested learning path.

        Args:
            topic: Concept to find examples for (e.g., 'object creation', 'conditionals')
            difficulty: 'beginner', 'intermediate' or 'advanced'
            server_type: Server compatibility filter (e.g., 'PennMUSH')
            category: Example category (e.g., 'building', 'functions', 'security')
            max_results: Max examples to return (1-100, default 10)
            include_learning_path: Whether to append a step-by-step learning path

        Returns:
            Examples with code and explanations, plus an optional learning path.
        """
        try:
            payload = service.get_examples(
                topic,
                difficulty=difficulty,
                server_type=server_type,
                category=category,
                max_results=max_results,
                include_learning_path=include_learning_path,
            )
        except ValidationError as e:
            logger.info("get_examples rejected: %s", e.message)
            return e.user_message
        return format_examples(payload)

    return get_examples
