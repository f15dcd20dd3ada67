"""Order-and-inventory consistency core with a FastMCP tool layer."""

__version__ = "0.1.0"
