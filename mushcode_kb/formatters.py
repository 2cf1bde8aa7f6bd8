"""Response formatters for MCP tool outputs.

Turn search results and statistics into readable markdown for the
calling model.
"""

from mushcode_kb.models import EXAMPLES, PATTERNS


def format_search_result(result, store) -> str:
    """Format a SearchResult, resolving ids to record titles."""
    if not result.patterns and not result.examples:
        return "No knowledge entries matched your query."

    shown = len(result.patterns) + len(result.examples)
    lines = [f"Found {result.total_results} matches (showing {shown}):\n"]

    if result.patterns:
        lines.append("## Patterns\n")
        for m in result.patterns:
            p = store.get(PATTERNS, m.id)
            name = p.name if p else m.id
            lines.append(
                f"- **{name}** (`{m.id}`) — relevance {m.relevance:.2f}\n"
                f"  Matched: {', '.join(m.matched_terms) or 'N/A'}"
            )
            if p:
                lines.append(
                    f"  Category: {p.category} | Difficulty: {p.difficulty} | "
                    f"Servers: {', '.join(p.server_compatibility) or 'any'}"
                )
        lines.append("")

    if result.examples:
        lines.append("## Examples\n")
        for m in result.examples:
            e = store.get(EXAMPLES, m.id)
            title = e.title if e else m.id
            lines.append(
                f"- **{title}** (`{m.id}`) — relevance {m.relevance:.2f}\n"
                f"  Matched: {', '.join(m.matched_terms) or 'N/A'}"
            )
        lines.append("")

    lines.append(f"_Search took {result.execution_time_ms}ms._")
    return "\n".join(lines)


def format_examples(payload: dict) -> str:
    """Format the output of KnowledgeService.get_examples."""
    examples = payload["examples"]
    if not examples:
        return f"No examples found for '{payload['query']}'."

    lines = [f"# Examples for '{payload['query']}'\n",
             f"Found {payload['total_found']} ({', '.join(payload['filters_applied'])})\n"]
    for example, relevance in examples:
        lines.append(f"## {example.title}")
        lines.append(
            f"`{example.id}` | {example.category} | {example.difficulty} | "
            f"relevance {relevance:.2f}\n"
        )
        if example.description:
            lines.append(example.description + "\n")
        if example.code:
            lines.append(f"```\n{example.code}\n```\n")
        if example.explanation:
            lines.append(example.explanation + "\n")

    steps = payload.get("learning_path") or []
    if steps:
        lines.append("## Learning path\n")
        for step in steps:
            lines.append(
                f"{step['step_number']}. **{step['title']}** — {step['description']}"
            )
            if step["example_ids"]:
                lines.append(f"   Examples: {', '.join(step['example_ids'])}")
    return "\n".join(lines)


def format_stats(stats: dict) -> str:
    """Format KnowledgeService.stats() output."""
    kb = stats["knowledge"]
    lines = [
        "# Knowledge base\n",
        f"- Patterns: {kb['patterns']}",
        f"- Examples: {kb['examples']}",
        f"- Security rules: {kb['securityRules']}",
        f"- Dialects: {kb['dialects']}",
        f"- Learning paths: {kb['learningPaths']}",
        f"- Version: {kb['version']}",
        f"- Last updated: {kb['lastUpdated']}",
    ]
    cache = stats.get("cache")
    if cache is None:
        lines.append("\nSearch cache disabled.")
    else:
        lines.extend([
            "\n# Search cache\n",
            f"- Size: {cache['size']} / {cache['maxSize']}",
            f"- Hits: {cache['hits']} | Misses: {cache['misses']} | "
            f"Hit rate: {cache['hitRate']:.1%}",
            f"- Evictions: {cache['evictions']}",
        ])
    return "\n".join(lines)
