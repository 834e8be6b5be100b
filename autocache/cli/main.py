"""Main CLI entry point for autocache."""

import logging

import click


def get_version() -> str:
    """Get the current version."""
    try:
        from autocache import __version__

        return __version__
    except ImportError:
        return "unknown"


@click.group()
@click.version_option(version=get_version(), prog_name="autocache")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="INFO",
    envvar="AUTOCACHE_LOG_LEVEL",
    show_default=True,
    help="Logging level",
)
@click.pass_context
def main(ctx: click.Context, log_level: str) -> None:
    """autocache - Prompt-cache breakpoints for the Anthropic Messages API.

    Plan cache_control breakpoints for requests, or run a proxy that
    injects them automatically.

    \b
    Examples:
        autocache proxy                      Start the caching proxy
        autocache plan request.json          Show the plan for a request
        autocache plan request.json --json   Print the annotated request
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    ctx.ensure_object(dict)


# Import subcommands - these register themselves with the main group
def _register_commands() -> None:
    """Register all subcommands."""
    from . import (
        plan,  # noqa: F401
        proxy,  # noqa: F401
    )


_register_commands()

if __name__ == "__main__":
    main()
