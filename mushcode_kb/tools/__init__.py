"""MCP tool factories.

Each ``make_*`` function binds a tool to a KnowledgeService and returns the
async function FastMCP registers.
"""
