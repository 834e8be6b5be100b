"""autocache Proxy Server.

An Anthropic Messages API proxy that plans prompt-cache breakpoints for
every request before forwarding it upstream.

Features:
- cache_control injection with 5m / 1h retention tiers
- Per-request strategy override and bypass via headers
- Streaming passthrough
- Retry with exponential backoff on transport errors and 5xx
- X-Autocache-* response headers describing the plan
- Prometheus metrics

Usage:
    python -m autocache.proxy.server --port 8080

    # With any Anthropic client:
    ANTHROPIC_BASE_URL=http://localhost:8080 your-app
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import random
import time
from dataclasses import dataclass
from typing import Any

import httpx
import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse, StreamingResponse

from autocache import __version__
from autocache.cache.base import PlanMetadata
from autocache.config import DEFAULT_API_URL, CacheStrategy, parse_strategy
from autocache.exceptions import ConfigurationError, UpstreamError, ValidationError
from autocache.planner import CachePlanner

logger = logging.getLogger("autocache.proxy")

# Headers that describe a single hop or are recomputed by the server
HOP_BY_HOP_HEADERS = frozenset(
    {
        "connection",
        "keep-alive",
        "transfer-encoding",
        "content-length",
        "content-encoding",
        "host",
        "upgrade",
    }
)

BYPASS_HEADER = "x-autocache-bypass"
STRATEGY_HEADER = "x-autocache-strategy"


# =============================================================================
# Configuration
# =============================================================================


@dataclass
class ProxyConfig:
    """Proxy configuration."""

    # Server
    host: str = "127.0.0.1"
    port: int = 8080

    # Planning
    strategy: CacheStrategy = CacheStrategy.MODERATE
    add_response_headers: bool = True

    # Upstream
    api_url: str = DEFAULT_API_URL
    api_key: str = ""

    # Retry
    retry_enabled: bool = True
    retry_max_attempts: int = 3
    retry_base_delay_ms: int = 500
    retry_max_delay_ms: int = 10000

    # Timeouts
    request_timeout_seconds: int = 300
    connect_timeout_seconds: int = 10

    def validate(self) -> None:
        """Reject settings the proxy cannot run with.

        Raises:
            ConfigurationError: On an invalid port or retry limit.
        """
        if not 0 < self.port < 65536:
            raise ConfigurationError("Port out of range", details={"port": self.port})
        if self.retry_max_attempts < 1:
            raise ConfigurationError(
                "retry_max_attempts must be at least 1",
                details={"retry_max_attempts": self.retry_max_attempts},
            )


# =============================================================================
# Metrics
# =============================================================================


class ProxyMetrics:
    """Prometheus-compatible counters."""

    def __init__(self):
        self.requests_total = 0
        self.requests_injected = 0
        self.requests_bypassed = 0
        self.requests_invalid = 0
        self.requests_failed = 0

        self.breakpoints_total = 0
        self.tokens_total = 0
        self.tokens_cached = 0

    def record_plan(self, metadata: PlanMetadata) -> None:
        self.requests_total += 1
        if metadata.injected:
            self.requests_injected += 1
        self.breakpoints_total += len(metadata.breakpoints)
        self.tokens_total += metadata.total_tokens
        self.tokens_cached += metadata.cached_tokens

    def record_bypassed(self) -> None:
        self.requests_total += 1
        self.requests_bypassed += 1

    def record_invalid(self) -> None:
        self.requests_total += 1
        self.requests_invalid += 1

    def record_failed(self) -> None:
        self.requests_failed += 1

    def stats(self) -> dict[str, Any]:
        return {
            "requests": {
                "total": self.requests_total,
                "injected": self.requests_injected,
                "bypassed": self.requests_bypassed,
                "invalid": self.requests_invalid,
                "failed": self.requests_failed,
            },
            "breakpoints_total": self.breakpoints_total,
            "tokens": {
                "total": self.tokens_total,
                "cached": self.tokens_cached,
            },
        }

    def export(self) -> str:
        """Export metrics in Prometheus format."""
        counters = [
            ("autocache_requests_total", "Total number of requests", self.requests_total),
            (
                "autocache_requests_injected_total",
                "Requests with at least one breakpoint",
                self.requests_injected,
            ),
            ("autocache_requests_bypassed_total", "Bypassed requests", self.requests_bypassed),
            ("autocache_requests_invalid_total", "Rejected requests", self.requests_invalid),
            ("autocache_requests_failed_total", "Upstream failures", self.requests_failed),
            ("autocache_breakpoints_total", "Injected breakpoints", self.breakpoints_total),
            ("autocache_tokens_total", "Estimated input tokens", self.tokens_total),
            ("autocache_tokens_cached_total", "Estimated cached tokens", self.tokens_cached),
        ]
        lines: list[str] = []
        for name, help_text, value in counters:
            lines.extend(
                [f"# HELP {name} {help_text}", f"# TYPE {name} counter", f"{name} {value}", ""]
            )
        return "\n".join(lines)


def metadata_headers(metadata: PlanMetadata) -> dict[str, str]:
    """Render plan metadata as X-Autocache-* response headers."""
    headers = {
        "X-Autocache-Injected": "true" if metadata.injected else "false",
        "X-Autocache-Strategy": metadata.strategy,
        "X-Autocache-Total-Tokens": str(metadata.total_tokens),
        "X-Autocache-Cached-Tokens": str(metadata.cached_tokens),
        "X-Autocache-Cache-Ratio": f"{metadata.cache_ratio:.3f}",
    }
    if metadata.breakpoints:
        headers["X-Autocache-Breakpoints"] = ",".join(
            bp.to_header_value() for bp in metadata.breakpoints
        )
    if metadata.roi is not None:
        headers["X-Autocache-ROI-Write-Premium"] = f"{metadata.roi.write_premium_usd:.6f}"
        headers["X-Autocache-ROI-Savings-Per-Read"] = f"{metadata.roi.savings_per_read_usd:.6f}"
        if metadata.roi.break_even_reads is not None:
            headers["X-Autocache-ROI-Break-Even"] = str(metadata.roi.break_even_reads)
    return headers


def _filter_headers(headers: httpx.Headers | dict[str, str]) -> dict[str, str]:
    return {k: v for k, v in headers.items() if k.lower() not in HOP_BY_HOP_HEADERS}


def _error_response(status_code: int, error_type: str, message: str) -> JSONResponse:
    # Same envelope as upstream errors so clients handle both alike
    return JSONResponse(
        status_code=status_code,
        content={"type": "error", "error": {"type": error_type, "message": message}},
    )


# =============================================================================
# Proxy
# =============================================================================


class AutocacheProxy:
    """Anthropic proxy that injects cache breakpoints."""

    def __init__(
        self,
        config: ProxyConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config
        self.api_url = config.api_url.rstrip("/")
        self.planners: dict[CacheStrategy, CachePlanner] = {
            strategy: CachePlanner(
                strategy,
                api_url=self.api_url,
                api_key=config.api_key,
                logger=logging.getLogger("autocache.planner"),
            )
            for strategy in CacheStrategy
        }
        self.metrics = ProxyMetrics()

        self._transport = transport
        self.http_client: httpx.AsyncClient | None = None

        self._request_counter = 0

    async def startup(self):
        """Initialize async resources."""
        self.http_client = httpx.AsyncClient(
            timeout=httpx.Timeout(
                connect=self.config.connect_timeout_seconds,
                read=self.config.request_timeout_seconds,
                write=self.config.request_timeout_seconds,
                pool=self.config.connect_timeout_seconds,
            ),
            transport=self._transport,
        )
        logger.info("autocache proxy started")
        logger.info(f"Strategy: {self.config.strategy.value}")
        logger.info(f"Upstream: {self.api_url}")

    async def shutdown(self):
        """Cleanup async resources."""
        if self.http_client:
            await self.http_client.aclose()
        stats = self.metrics.stats()
        logger.info(
            f"Session summary: {stats['requests']['total']} requests, "
            f"{stats['requests']['injected']} injected, "
            f"{stats['breakpoints_total']} breakpoints"
        )

    def _next_request_id(self) -> str:
        self._request_counter += 1
        return f"ac_{int(time.time())}_{self._request_counter:06d}"

    def _upstream_headers(self, request: Request) -> dict[str, str]:
        headers = _filter_headers(dict(request.headers.items()))
        headers = {k: v for k, v in headers.items() if not k.lower().startswith("x-autocache-")}
        has_credential = any(k.lower() in ("x-api-key", "authorization") for k in headers)
        if self.config.api_key and not has_credential:
            headers["x-api-key"] = self.config.api_key
        return headers

    def _planner_for(self, request: Request) -> CachePlanner:
        override = request.headers.get(STRATEGY_HEADER)
        if override:
            return self.planners[parse_strategy(override)]
        return self.planners[self.config.strategy]

    async def _retry_request(
        self,
        url: str,
        headers: dict[str, str],
        body: dict[str, Any],
    ) -> httpx.Response:
        """Make request with retry and exponential backoff."""
        last_error: Exception | None = None

        for attempt in range(self.config.retry_max_attempts):
            try:
                response = await self.http_client.post(url, json=body, headers=headers)

                # Don't retry client errors (4xx) or successes
                if response.status_code < 500:
                    return response

                raise httpx.HTTPStatusError(
                    f"Server error: {response.status_code}",
                    request=response.request,
                    response=response,
                )

            except (httpx.TransportError, httpx.HTTPStatusError) as e:
                last_error = e

                if not self.config.retry_enabled or attempt >= self.config.retry_max_attempts - 1:
                    if isinstance(e, httpx.HTTPStatusError):
                        return e.response
                    raise UpstreamError(
                        "Upstream request failed",
                        details={"url": url, "attempts": attempt + 1, "error": str(e)},
                    ) from e

                delay = min(
                    self.config.retry_base_delay_ms * (2**attempt),
                    self.config.retry_max_delay_ms,
                )
                delay_with_jitter = delay * (0.5 + random.random())

                logger.warning(
                    f"Request failed (attempt {attempt + 1}), retrying in {delay_with_jitter:.0f}ms: {e}"
                )
                await asyncio.sleep(delay_with_jitter / 1000)

            except httpx.HTTPError as e:
                # Only transport errors and 5xx are retried
                raise UpstreamError(
                    "Upstream request failed",
                    details={"url": url, "attempts": attempt + 1, "error": str(e)},
                ) from e

        raise UpstreamError("Upstream request failed", details={"url": url}) from last_error

    async def handle_messages(self, request: Request) -> Response:
        """Handle the /v1/messages endpoint."""
        request_id = self._next_request_id()

        try:
            body = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            self.metrics.record_invalid()
            return _error_response(400, "invalid_request_error", "Request body is not valid JSON")

        headers = self._upstream_headers(request)
        extra_headers: dict[str, str] = {}

        if request.headers.get(BYPASS_HEADER, "").lower() in ("1", "true", "yes"):
            self.metrics.record_bypassed()
            logger.debug(f"[{request_id}] Bypass requested, forwarding unchanged")
            outgoing = body
            if self.config.add_response_headers:
                extra_headers["X-Autocache-Injected"] = "false"
                extra_headers["X-Autocache-Bypassed"] = "true"
        else:
            try:
                result = self._planner_for(request).plan(body)
            except (ValidationError, ConfigurationError) as e:
                self.metrics.record_invalid()
                logger.warning(f"[{request_id}] Rejected request: {e}")
                return _error_response(400, "invalid_request_error", str(e))

            self.metrics.record_plan(result.metadata)
            outgoing = result.request
            if self.config.add_response_headers:
                extra_headers.update(metadata_headers(result.metadata))

        url = f"{self.api_url}/v1/messages"
        stream = bool(outgoing.get("stream", False)) if isinstance(outgoing, dict) else False

        try:
            if stream:
                return await self._stream_response(url, headers, outgoing, extra_headers)

            response = await self._retry_request(url, headers, outgoing)
        except UpstreamError as e:
            self.metrics.record_failed()
            logger.error(f"[{request_id}] Request failed: {e}")
            return _error_response(502, "api_error", str(e))

        return Response(
            content=response.content,
            status_code=response.status_code,
            headers={**_filter_headers(response.headers), **extra_headers},
        )

    async def _stream_response(
        self,
        url: str,
        headers: dict[str, str],
        body: dict[str, Any],
        extra_headers: dict[str, str],
    ) -> StreamingResponse:
        """Forward a streaming request and relay the event stream."""
        upstream_request = self.http_client.build_request("POST", url, json=body, headers=headers)
        try:
            upstream = await self.http_client.send(upstream_request, stream=True)
        except httpx.HTTPError as e:
            raise UpstreamError(
                "Upstream request failed", details={"url": url, "error": str(e)}
            ) from e

        async def generate():
            try:
                async for chunk in upstream.aiter_bytes():
                    yield chunk
            finally:
                await upstream.aclose()

        return StreamingResponse(
            generate(),
            status_code=upstream.status_code,
            headers={**_filter_headers(upstream.headers), **extra_headers},
            media_type=upstream.headers.get("content-type", "text/event-stream"),
        )

    async def handle_passthrough(self, request: Request) -> Response:
        """Pass through request unchanged."""
        url = f"{self.api_url}{request.url.path}"
        if request.url.query:
            url = f"{url}?{request.url.query}"

        body = await request.body()

        try:
            response = await self.http_client.request(
                method=request.method,
                url=url,
                headers=self._upstream_headers(request),
                content=body,
            )
        except httpx.HTTPError as e:
            self.metrics.record_failed()
            logger.error(f"Passthrough to {url} failed: {e}")
            return _error_response(502, "api_error", f"Upstream request failed: {e}")

        return Response(
            content=response.content,
            status_code=response.status_code,
            headers=_filter_headers(response.headers),
        )


# =============================================================================
# FastAPI App
# =============================================================================


def create_app(
    config: ProxyConfig | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Create FastAPI application.

    Args:
        config: Proxy configuration.
        transport: Optional httpx transport for the upstream client.
    """
    config = config or ProxyConfig()
    config.validate()

    app = FastAPI(
        title="autocache Proxy",
        description="Prompt-cache breakpoint injection for the Anthropic Messages API",
        version=__version__,
    )

    proxy = AutocacheProxy(config, transport=transport)
    app.state.proxy = proxy

    @app.on_event("startup")
    async def startup():
        await proxy.startup()

    @app.on_event("shutdown")
    async def shutdown():
        await proxy.shutdown()

    @app.get("/health")
    async def health():
        return {
            "status": "healthy",
            "version": __version__,
            "strategy": config.strategy.value,
        }

    @app.get("/stats")
    async def stats():
        return proxy.metrics.stats()

    @app.get("/metrics")
    async def metrics():
        return PlainTextResponse(proxy.metrics.export(), media_type="text/plain; version=0.0.4")

    @app.post("/v1/messages")
    async def messages(request: Request):
        return await proxy.handle_messages(request)

    @app.api_route("/{path:path}", methods=["GET", "POST", "PUT", "DELETE"])
    async def passthrough(request: Request, path: str):
        return await proxy.handle_passthrough(request)

    return app


def run_server(config: ProxyConfig | None = None):
    """Run the proxy server."""
    config = config or ProxyConfig()
    app = create_app(config)
    uvicorn.run(app, host=config.host, port=config.port, log_level="warning")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="autocache Proxy Server")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8080)
    parser.add_argument(
        "--strategy",
        choices=[s.value for s in CacheStrategy],
        default=CacheStrategy.MODERATE.value,
    )
    parser.add_argument("--api-url", default=DEFAULT_API_URL)
    parser.add_argument("--no-retry", action="store_true", help="Disable upstream retries")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    run_server(
        ProxyConfig(
            host=args.host,
            port=args.port,
            strategy=CacheStrategy(args.strategy),
            api_url=args.api_url,
            retry_enabled=not args.no_retry,
        )
    )
