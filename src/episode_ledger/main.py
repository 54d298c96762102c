"""Command line entry point for the episode ledger."""

import asyncio
from pathlib import Path
from typing import List, Optional

import structlog
import typer
from rich.console import Console
from rich.table import Table

from episode_ledger import __version__
from episode_ledger.core.config import Settings
from episode_ledger.core.exceptions import FatalUserExit, StateStoreError
from episode_ledger.core.logging import setup_logging
from episode_ledger.models.disc import DiscResult, Track
from episode_ledger.models.series import SeriesIdentity
from episode_ledger.services.console_decisions import ConsoleDecisions
from episode_ledger.services.file_mover import LocalFileMover
from episode_ledger.services.metadata import create_metadata_lookup
from episode_ledger.services.series_engine import SeriesStateEngine
from episode_ledger.services.state_store import StateStore

app = typer.Typer(
    name="episode-ledger",
    help="Episode Ledger - season/episode continuity for ripped TV discs",
)
console = Console()
logger = structlog.get_logger()


def load_settings(config_path: Optional[Path]) -> Settings:
    """Load settings from file or defaults."""
    if config_path and config_path.exists():
        logger.info("loading_config", path=str(config_path))
        return Settings.from_yaml(config_path)

    # Try default locations
    default_paths = [
        Path("config/config.yaml"),
        Path("config.yaml"),
        Path.home() / ".episode-ledger" / "config.yaml",
    ]

    for path in default_paths:
        if path.exists():
            logger.info("loading_config", path=str(path))
            return Settings.from_yaml(path)

    logger.info("using_default_config")
    return Settings()


def parse_track_spec(index: int, spec: str) -> Track:
    """Parse NAME:SECONDS[:MPLS] into a Track."""
    parts = spec.split(":")
    if len(parts) not in (2, 3) or not parts[0]:
        raise typer.BadParameter(f"expected NAME:SECONDS[:MPLS], got {spec!r}", param_hint="--track")
    try:
        seconds = int(parts[1])
    except ValueError:
        raise typer.BadParameter(f"duration must be whole seconds, got {parts[1]!r}", param_hint="--track")
    if seconds <= 0:
        raise typer.BadParameter(f"duration must be positive, got {seconds}", param_hint="--track")

    return Track(
        index=index,
        name=parts[0],
        duration_seconds=seconds,
        source_file_name=parts[2] if len(parts) == 3 and parts[2] else None,
        file_path=parts[0],
    )


async def run_process(
    settings: Settings,
    store: StateStore,
    series: str,
    disc_name: str,
    tracks: list[Track],
    source_dir: Optional[Path],
) -> DiscResult:
    """Process one disc with console prompts and local file moves."""
    metadata = create_metadata_lookup(settings.metadata)
    engine = SeriesStateEngine(
        store=store,
        decisions=ConsoleDecisions(console),
        files=LocalFileMover.from_config(settings.output, source_dir),
        metadata=metadata,
    )
    try:
        return await engine.process_disc(series, disc_name, tracks)
    finally:
        await metadata.close()


def print_result(result: DiscResult) -> None:
    disc = result.disc_info
    table = Table(title=f"{result.series_title} - {disc.disc_name}")
    table.add_column("Track", justify="right")
    table.add_column("Episodes")
    table.add_column("Status")

    for index, episodes in sorted(disc.track_to_episode_mapping.items()):
        codes = ", ".join(f"S{disc.season:02d}E{ep:02d}" for ep in episodes)
        table.add_row(str(index), codes, "[green]moved[/green]")
    for index in result.failed_tracks:
        table.add_row(str(index), "-", "[red]failed[/red]")
    for index in result.skipped_tracks:
        table.add_row(str(index), "-", "[yellow]skipped[/yellow]")

    console.print(table)
    if result.partial:
        console.print(f"[yellow][!][/yellow] {len(result.failed_tracks)} track(s) failed; they were left out of the ledger")


@app.command()
def process(
    disc_name: str = typer.Argument(..., help="Disc volume label, e.g. Frasier_S1_D1"),
    track: List[str] = typer.Option(
        ...,
        "--track",
        "-t",
        help="Ripped track as NAME:SECONDS[:MPLS]; repeat per track in disc order",
    ),
    series: Optional[str] = typer.Option(
        None,
        "--series",
        "-s",
        help="Series title (remembered for discs with the same label)",
    ),
    source_dir: Optional[Path] = typer.Option(None, "--source-dir", help="Directory holding the ripped files"),
    output_dir: Optional[Path] = typer.Option(None, "--output-dir", help="Library root for organized episodes"),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to configuration file",
    ),
) -> None:
    """Assign episodes to a disc's tracks and move them into the library."""
    settings = load_settings(config)
    setup_logging(settings.logging)
    if output_dir:
        settings.output.output_dir = str(output_dir)

    tracks = [parse_track_spec(i, spec) for i, spec in enumerate(track)]
    store = StateStore(settings.state.path)

    if series is None:
        cached = store.get_manual_identification(disc_name)
        if cached is None or cached.identity.media_type != "series":
            console.print(f"[red]No series known for {disc_name}; pass --series[/red]")
            raise typer.Exit(code=2)
        series = cached.identity.title
        console.print(f"Using remembered series [bold]{series}[/bold]")
    else:
        store.save_manual_identification(disc_name, SeriesIdentity(title=series))

    try:
        result = asyncio.run(run_process(settings, store, series, disc_name, tracks, source_dir))
    except FatalUserExit as e:
        console.print(f"[red]Stopped:[/red] {e}. Completed tracks were saved.")
        raise typer.Exit(code=1)
    except StateStoreError as e:
        console.print(f"[red]Could not save the ledger:[/red] {e}")
        raise typer.Exit(code=1)

    print_result(result)


@app.command()
def show(
    series: Optional[str] = typer.Argument(None, help="Series title; all series when omitted"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to configuration file"),
) -> None:
    """Show the ledger position of one or all series."""
    settings = load_settings(config)
    setup_logging(settings.logging)
    store = StateStore(settings.state.path)

    if series:
        state = store.get_series_state(series)
        if state is None:
            console.print(f"[yellow]No ledger for {series}[/yellow]")
            raise typer.Exit(code=1)

        table = Table(title=f"{state.series_title} - discs")
        table.add_column("Disc")
        table.add_column("Season", justify="right")
        table.add_column("Disc #", justify="right")
        table.add_column("Episodes")
        for disc in state.processed_discs:
            episodes = sorted(disc.assigned_episodes())
            span = f"{episodes[0]}-{episodes[-1]}" if episodes else "-"
            table.add_row(disc.disc_name, str(disc.season), str(disc.disc_number), span)
        console.print(table)
        console.print(
            f"Next: S{state.current_season:02d}E{state.next_episode:02d}, disc {state.next_disc_number}"
            f" | auto-increment: {'on' if state.auto_increment else 'off'}"
            f" | sorting: {state.track_sorting_strategy.value if state.track_sorting_strategy else 'not chosen'}"
        )
        return

    states = store.list_series_states()
    if not states:
        console.print("No series tracked yet")
        return

    table = Table(title="Series ledger")
    table.add_column("Series")
    table.add_column("Discs", justify="right")
    table.add_column("Next", justify="right")
    table.add_column("Auto")
    for state in sorted(states, key=lambda s: s.series_title.casefold()):
        table.add_row(
            state.series_title,
            str(len(state.processed_discs)),
            f"S{state.current_season:02d}E{state.next_episode:02d}",
            "yes" if state.auto_increment else "no",
        )
    console.print(table)


@app.command()
def forget(
    series: str = typer.Argument(..., help="Series title to remove"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to configuration file"),
) -> None:
    """Remove a series from the ledger."""
    settings = load_settings(config)
    setup_logging(settings.logging)
    store = StateStore(settings.state.path)

    if not yes and not typer.confirm(f"Forget everything recorded for {series}?"):
        raise typer.Exit(code=1)

    if store.delete_series_state(series):
        console.print(f"[green][OK][/green] Forgot {series}")
    else:
        console.print(f"[yellow]No ledger for {series}[/yellow]")
        raise typer.Exit(code=1)


@app.command()
def version() -> None:
    """Show version information."""
    console.print(f"Episode Ledger v{__version__}")


@app.command()
def check(
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to configuration file"),
) -> None:
    """Check configuration and storage locations."""
    console.print("[bold]Episode Ledger - System Check[/bold]\n")

    settings = load_settings(config)

    state_path = settings.state.path
    if state_path.exists():
        console.print(f"[green][OK][/green] State file: {state_path}")
    else:
        console.print(f"[yellow][!][/yellow] State file missing: {state_path}")
        console.print("  (Will be created on first disc)")

    output_dir = Path(settings.output.output_dir)
    if output_dir.exists():
        console.print(f"[green][OK][/green] Output directory exists: {output_dir}")
    else:
        console.print(f"[yellow][!][/yellow] Output directory missing: {output_dir}")

    if settings.metadata.omdb_api_key:
        console.print("[green][OK][/green] OMDb API key configured")
    else:
        console.print("[yellow][!][/yellow] No OMDb API key; season rollover needs episode counts")


if __name__ == "__main__":
    app()
