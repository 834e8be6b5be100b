"""Anthropic Messages API proxy with automatic cache breakpoints.

Requires the server dependencies (fastapi, uvicorn, httpx).
"""

from .server import AutocacheProxy, ProxyConfig, create_app, run_server

__all__ = ["AutocacheProxy", "ProxyConfig", "create_app", "run_server"]
