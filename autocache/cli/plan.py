"""Offline planning CLI command."""

import json
from pathlib import Path

import click

from autocache.config import CacheStrategy
from autocache.exceptions import ValidationError
from autocache.planner import CachePlanner

from ._utils import (
    format_usd,
    print_error,
    print_stats,
    print_success,
    print_table,
    print_warning,
)
from .main import main


@main.command()
@click.argument("request_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--strategy",
    "-s",
    type=click.Choice([s.value for s in CacheStrategy]),
    default=CacheStrategy.MODERATE.value,
    envvar="AUTOCACHE_STRATEGY",
    show_default=True,
    help="Breakpoint strategy",
)
@click.option("--json", "as_json", is_flag=True, help="Print the annotated request as JSON")
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, writable=True, path_type=Path),
    default=None,
    help="Write the annotated request to a file",
)
def plan(request_file: Path, strategy: str, as_json: bool, output: Path | None) -> None:
    """Plan cache breakpoints for a request stored as JSON.

    \b
    Examples:
        autocache plan request.json
        autocache plan request.json -s aggressive --json
        autocache plan request.json -o annotated.json
    """
    try:
        body = json.loads(request_file.read_text())
    except json.JSONDecodeError as e:
        print_error(f"{request_file} is not valid JSON: {e}")
        raise SystemExit(1) from None

    planner = CachePlanner(CacheStrategy(strategy))
    try:
        result = planner.plan(body)
    except ValidationError as e:
        print_error(str(e))
        raise SystemExit(1) from None

    annotated = json.dumps(result.request, indent=2)
    if output is not None:
        output.write_text(annotated + "\n")

    if as_json:
        click.echo(annotated)
        return

    metadata = result.metadata
    if metadata.breakpoints:
        print_table(
            ["#", "Position", "TTL", "Tokens"],
            [
                [str(i), bp.position, bp.ttl, f"{bp.tokens:,}"]
                for i, bp in enumerate(metadata.breakpoints)
            ],
            title="Cache Breakpoints",
        )
    else:
        print_warning("No breakpoints planned")

    stats = {
        "Strategy": metadata.strategy,
        "Model": metadata.model or "(none)",
        "Total tokens": f"{metadata.total_tokens:,}",
        "Cached tokens": f"{metadata.cached_tokens:,}",
        "Cache ratio": f"{metadata.cache_ratio:.1%}",
    }
    if metadata.roi is not None:
        stats["Write premium"] = format_usd(metadata.roi.write_premium_usd)
        stats["Savings per read"] = format_usd(metadata.roi.savings_per_read_usd)
        if metadata.roi.break_even_reads is not None:
            stats["Break-even reads"] = str(metadata.roi.break_even_reads)
    print_stats(stats, title="Plan")

    for warning in metadata.warnings:
        print_warning(warning)

    if output is not None:
        print_success(f"Annotated request written to {output}")
