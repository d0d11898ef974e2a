"""
osu-leaderboard: CLI entry point.

All commands follow this pattern:
  1. Load ``AppConfig`` via ``load_config()``.
  2. Configure logging.
  3. Apply command-line overrides and validate them.
  4. Execute the action.
  5. Report the result to stdout; errors go to stderr as ``[ERROR] ...``.

Exit codes for ``fetch``:
  0  snapshot written
  1  missing/invalid configuration, token exchange failed, or no data
  2  unexpected failure

Install and run::

    pip install -e .
    osu-leaderboard --help
    osu-leaderboard validate-config
    osu-leaderboard fetch --country IQ --limit 50
    osu-leaderboard show leaderboard.json --top 10
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

import typer

app = typer.Typer(
    name="osu-leaderboard",
    help="osu! country leaderboard snapshotter: API first, HTML scrape as fallback.",
    add_completion=False,
)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _load_config_or_exit(config_path: Optional[str] = None):
    """Load AppConfig, printing a friendly error and exiting on failure."""
    from osu_leaderboard.config import load_config

    try:
        cfg_path = Path(config_path) if config_path else None
        return load_config(cfg_path)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except Exception as exc:
        typer.echo(f"[ERROR] Config validation failed: {exc}", err=True)
        raise typer.Exit(code=1)


def _configure_logging(config):
    """Set up logging from config; ``debug`` forces DEBUG level."""
    from osu_leaderboard.utils.logging import configure_logging

    configure_logging(config.logging, debug=config.debug)


def _apply_overrides(
    config,
    country: Optional[str] = None,
    limit: Optional[int] = None,
    output: Optional[str] = None,
    enrich: Optional[bool] = None,
    scrape_pages: Optional[int] = None,
    max_pages: Optional[int] = None,
):
    """Return a re-validated ``AppConfig`` with command-line values applied.

    Raises:
        pydantic.ValidationError: If an override fails validation.
    """
    from osu_leaderboard.config import AppConfig

    data: dict[str, Any] = config.model_dump()
    if country is not None:
        data["country"] = country
    if limit is not None:
        data["api"]["limit"] = limit
    if output is not None:
        data["output"]["path"] = output
    if enrich is not None:
        data["enrichment"]["enabled"] = enrich
    if scrape_pages is not None:
        data["scrape"]["pages"] = scrape_pages
    if max_pages is not None:
        data["pagination"]["max_pages"] = max_pages
    return AppConfig.model_validate(data)


# ── Commands ──────────────────────────────────────────────────────────────────

@app.command("fetch")
def fetch(
    country: Optional[str] = typer.Option(
        None,
        "--country",
        help="2-letter country code (default: OSU_COUNTRY or config).",
    ),
    limit: Optional[int] = typer.Option(
        None,
        "--limit",
        help="Maximum number of players to keep (1-200).",
    ),
    output: Optional[str] = typer.Option(
        None,
        "--output",
        help="Snapshot destination (default: leaderboard.json).",
    ),
    enrich: Optional[bool] = typer.Option(
        None,
        "--enrich/--no-enrich",
        help="Look up each player's detail record after the ranking list.",
    ),
    scrape_pages: Optional[int] = typer.Option(
        None,
        "--scrape-pages",
        help="Number of public ranking pages to scrape in fallback mode.",
    ),
    max_pages: Optional[int] = typer.Option(
        None,
        "--max-pages",
        help="Page cap for the cursor-paginated API adapter.",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Fetch the country leaderboard and write the snapshot.

    \b
    Source priority:
      1. direct ranking endpoint (several URL shapes)
      2. cursor-paginated ranking endpoint
      3. public ranking pages (HTML scrape)

    \b
    Credential setup (.env, gitignored):
      OSU_CLIENT_ID=...
      OSU_CLIENT_SECRET=...
    """
    from pydantic import ValidationError

    from osu_leaderboard.errors import AuthError, ConfigError, NoDataError
    from osu_leaderboard.pipeline.fetch import FetchLeaderboardStage

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    try:
        config = _apply_overrides(
            config,
            country=country,
            limit=limit,
            output=output,
            enrich=enrich,
            scrape_pages=scrape_pages,
            max_pages=max_pages,
        )
    except ValidationError as exc:
        typer.echo(f"[ERROR] Invalid option: {exc}", err=True)
        raise typer.Exit(code=1)

    typer.echo(
        f"fetch | country={config.country} | limit={config.api.limit} | "
        f"enrich={config.enrichment.enabled} | output={config.output.path}"
    )

    try:
        run = FetchLeaderboardStage(config=config).run()
    except (ConfigError, AuthError, NoDataError, ValidationError) as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except Exception as exc:
        typer.echo(f"[ERROR] Unexpected failure: {exc}", err=True)
        raise typer.Exit(code=2)

    typer.echo(
        f"  status={run.status} | source={run.source} | entries={run.rows_processed}"
    )
    typer.echo(f"[OK] Snapshot written to {run.snapshot_path}")


@app.command("validate-config")
def validate_config(
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file (default: config/default.toml).",
    ),
    show_full: bool = typer.Option(
        False,
        "--full",
        help="Print full config including all fields.",
    ),
) -> None:
    """Validate the configuration and print parsed values.

    Credentials are reported as present/missing, never printed.
    Exits with code 1 if the config fails validation.
    """
    import os

    config = _load_config_or_exit(config_path)

    typer.echo("Configuration validated successfully.")
    typer.echo("")
    typer.echo(f"  Country:          {config.country}")
    typer.echo(f"  API base:         {config.api.base_url}")
    typer.echo(f"  Mode:             {config.api.mode}")
    typer.echo(f"  Limit:            {config.api.limit}")
    typer.echo(f"  Max pages:        {config.pagination.max_pages}")
    typer.echo(f"  Scrape pages:     {config.scrape.pages}")
    typer.echo(f"  Enrichment:       {config.enrichment.enabled}")
    typer.echo(f"  Output:           {config.output.path}")
    typer.echo(f"  Log level:        {config.logging.level}")
    typer.echo(f"  Debug mode:       {config.debug}")
    for var in ("OSU_CLIENT_ID", "OSU_CLIENT_SECRET"):
        state = "set" if os.environ.get(var) else "MISSING"
        typer.echo(f"  {var + ':':<18}{state}")

    if show_full:
        typer.echo("")
        typer.echo("Full config (JSON):")
        typer.echo(json.dumps(config.model_dump(), indent=2, default=str))

    typer.echo("")
    typer.echo("[OK] Config valid.")


@app.command("show")
def show(
    path: str = typer.Argument(
        "leaderboard.json",
        help="Snapshot file to summarize.",
    ),
    top: int = typer.Option(
        10,
        "--top",
        help="Number of entries to print.",
    ),
) -> None:
    """Summarize an existing snapshot file."""
    from pydantic import ValidationError

    from osu_leaderboard.ingestion.snapshot import load_snapshot
    from osu_leaderboard.utils.time_utils import from_epoch_millis

    try:
        snapshot = load_snapshot(Path(path))
    except FileNotFoundError:
        typer.echo(f"[ERROR] Snapshot not found: {path}", err=True)
        raise typer.Exit(code=1)
    except (json.JSONDecodeError, ValidationError) as exc:
        typer.echo(f"[ERROR] Not a valid snapshot: {exc}", err=True)
        raise typer.Exit(code=1)

    updated = from_epoch_millis(snapshot.updated_at).strftime("%Y-%m-%d %H:%M:%S UTC")
    typer.echo(
        f"country={snapshot.country} | source={snapshot.source} | "
        f"updated={updated} | entries={len(snapshot.items)}"
    )
    typer.echo("")
    typer.echo(f"  {'#':>4}  {'Player':<20} {'pp':>10} {'acc':>7}")
    for entry in snapshot.items[:top]:
        rank = entry.rank if entry.rank is not None else "-"
        pp = entry.pp if entry.pp is not None else "-"
        acc = f"{entry.accuracy}%" if entry.accuracy is not None else "-"
        typer.echo(f"  {rank:>4}  {entry.username:<20} {pp:>10} {acc:>7}")


# ── Entry point ───────────────────────────────────────────────────────────────

if __name__ == "__main__":
    app()
