"""MCP server that answers questions about images using an OpenAI-compatible vision API."""

__version__ = "0.1.0"