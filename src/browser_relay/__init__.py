"""browser-relay — drive a browser automation host over JSON-RPC (MCP)."""

from __future__ import annotations

__version__ = "0.1.0"
