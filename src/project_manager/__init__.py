"""Local ticket tracking with a JSON file store, a CLI and an MCP server."""

__version__ = "0.1.0"
