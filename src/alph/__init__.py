"""Configure MCP server entries across locally installed agent tools."""

__version__ = "0.4.0"
