"""Exceptions raised by the knowledge layer.

Only contract violations raise. Lookup misses are ``None``/``[]`` results,
and nothing in the core is retryable: a raised error is fatal to that one
call. MCP tools turn ``ValidationError`` into a plain-text reply.
"""

from __future__ import annotations


class KnowledgeError(Exception):
    """Base class for knowledge-layer errors."""

    def __init__(self, message: str, user_message: str | None = None,
                 details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.user_message = user_message or message
        self.details = details or {}


class ValidationError(KnowledgeError, ValueError):
    """Malformed query input, rejected before any store or cache access."""

    def __init__(self, message: str, field: str | None = None,
                 details: dict | None = None):
        details = dict(details or {})
        if field:
            details.setdefault("field", field)
        super().__init__(
            f"Invalid input: {message}",
            user_message=f"Invalid request: {message}",
            details=details,
        )
        self.field = field
