"""Proxy server CLI command."""

import click

from autocache.config import DEFAULT_API_URL, CacheStrategy

from .main import main


@main.command()
@click.option(
    "--host",
    default="127.0.0.1",
    envvar="AUTOCACHE_HOST",
    help="Host to bind to (default: 127.0.0.1)",
)
@click.option(
    "--port",
    "-p",
    default=8080,
    type=int,
    envvar="AUTOCACHE_PORT",
    help="Port to bind to (default: 8080)",
)
@click.option(
    "--strategy",
    "-s",
    type=click.Choice([s.value for s in CacheStrategy]),
    default=CacheStrategy.MODERATE.value,
    envvar="AUTOCACHE_STRATEGY",
    help="Breakpoint strategy (default: moderate)",
)
@click.option(
    "--api-url", default=DEFAULT_API_URL, envvar="ANTHROPIC_API_URL", help="Upstream API base URL"
)
@click.option(
    "--api-key",
    default="",
    envvar="ANTHROPIC_API_KEY",
    help="Upstream API key, used when a request carries none",
)
@click.option("--no-retry", is_flag=True, help="Disable upstream retries")
@click.option("--no-headers", is_flag=True, help="Do not add X-Autocache-* response headers")
def proxy(
    host: str,
    port: int,
    strategy: str,
    api_url: str,
    api_key: str,
    no_retry: bool,
    no_headers: bool,
) -> None:
    """Start the caching proxy server.

    \b
    Examples:
        autocache proxy                        Start proxy on port 8080
        autocache proxy -s aggressive          Cache more eagerly
        autocache proxy --port 9000

    \b
    Usage with Anthropic clients:
        ANTHROPIC_BASE_URL=http://localhost:8080 your-app
    """
    # Import here to avoid slow startup
    try:
        from autocache.proxy.server import ProxyConfig, run_server
    except ImportError as e:
        click.echo("Error: Proxy dependencies not installed. Run: pip install fastapi uvicorn httpx")
        click.echo(f"Details: {e}")
        raise SystemExit(1) from None

    config = ProxyConfig(
        host=host,
        port=port,
        strategy=CacheStrategy(strategy),
        api_url=api_url,
        api_key=api_key,
        retry_enabled=not no_retry,
        add_response_headers=not no_headers,
    )

    click.echo(f"""
autocache proxy

  URL:       http://{config.host}:{config.port}
  Upstream:  {config.api_url}
  Strategy:  {config.strategy.value}
  API key:   {"configured" if config.api_key else "from client requests"}

Usage:
  ANTHROPIC_BASE_URL=http://{config.host}:{config.port} your-app

Endpoints:
  POST /v1/messages   Messages API with cache breakpoints
  GET  /health        Health check
  GET  /stats         Planning statistics
  GET  /metrics       Prometheus metrics

Press Ctrl+C to stop.
""")

    try:
        run_server(config)
    except KeyboardInterrupt:
        click.echo("\nShutting down...")
