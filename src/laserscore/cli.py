"""
LaserScore CLI - Command Line Interface

Provides commands for:
- Processing a serialized game (scores, skills, winner, trophies)
- Resolving a mode name to its variant
- Recomputing and listing regression baselines
"""

import json
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from laserscore import __version__
from laserscore.core.config import get_config, load_config, set_config, setup_logging
from laserscore.core.constants import GameModeType
from laserscore.core.errors import LaserScoreError
from laserscore.models.serialization import game_from_dict, game_to_dict
from laserscore.models.settings import GameModeRow
from laserscore.modes.registry import (
    GameModeRegistry,
    InMemoryModeRepository,
    register_builtin_modes,
)
from laserscore.pipeline import GameProcessor
from laserscore.stats.baselines import InMemoryBaselinePersistence, StatBaselineStore
from laserscore.stats.engine import DataFrameStatSource, RegressionStatEngine

app = typer.Typer(
    name="laserscore",
    help="Laser game scoring, skill estimation and game mode resolution",
    add_completion=False,
)
baselines_app = typer.Typer(help="Regression baseline maintenance")
app.add_typer(baselines_app, name="baselines")

console = Console()
logger = logging.getLogger(__name__)


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        console.print(f"[bold blue]LaserScore[/bold blue] v{__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-V", help="Enable verbose output"),
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Configuration file (.yaml, .toml or .json)"
    ),
) -> None:
    """LaserScore - laser game results engine"""
    config = load_config(config_file)
    if verbose:
        config.logging.level = "DEBUG"
    set_config(config)
    setup_logging(config.logging)


def _load_mode_rows(path: Optional[Path]) -> list[GameModeRow]:
    if path is None:
        return []
    with open(path) as f:
        return [GameModeRow.from_dict(row) for row in json.load(f)]


def _build_registry(modes_file: Optional[Path]) -> GameModeRegistry:
    repository = InMemoryModeRepository(_load_mode_rows(modes_file))
    return register_builtin_modes(GameModeRegistry(repository))


def _build_store(history: Optional[Path], db: Optional[Path]) -> StatBaselineStore:
    config = get_config()
    database = None
    if db is not None:
        from laserscore.infra.database import DatabaseManager

        database = DatabaseManager(db, echo=config.database.echo)

    if history is not None:
        source = DataFrameStatSource.from_csv(history)
    elif database is not None:
        source = database
    else:
        source = DataFrameStatSource()

    engine = RegressionStatEngine(source, config.regression)
    persistence = database if database is not None else InMemoryBaselinePersistence()
    return StatBaselineStore(engine, persistence, config=config.baselines)


@app.command()
def process(
    game_json: Path = typer.Argument(
        ..., help="Serialized game (JSON)", exists=True, dir_okay=False, resolve_path=True
    ),
    history: Optional[Path] = typer.Option(
        None, "--history", "-H", help="CSV of historical player rows for the skill baselines"
    ),
    db: Optional[Path] = typer.Option(None, "--db", help="SQLite database with baselines"),
    modes_file: Optional[Path] = typer.Option(
        None, "--modes", "-m", help="JSON list of stored game modes"
    ),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Write the processed game as JSON"
    ),
) -> None:
    """Run the results pipeline on a game and print the results."""
    with open(game_json) as f:
        data = json.load(f)

    registry = _build_registry(modes_file)
    try:
        game = game_from_dict(data, registry)
        processor = GameProcessor(
            registry=registry,
            baselines=_build_store(history, db),
            config=get_config(),
        )
        result = processor.process(game)
    except LaserScoreError as e:
        console.print(f"[red]Error processing game:[/red] {e}")
        raise typer.Exit(1)

    info_table = Table(title=f"Game {game.code}", show_header=False)
    info_table.add_column("Property", style="cyan")
    info_table.add_column("Value")
    info_table.add_row("System", game.system.value)
    info_table.add_row("Mode", f"{result.mode.name or result.mode.key} ({result.mode.key})")
    info_table.add_row("Length", f"{game.real_game_length:.1f} min")
    winner = result.winner.name if result.winner is not None else "Draw"
    info_table.add_row("Winner", winner or "-")
    console.print(info_table)
    console.print()

    players_table = Table(title="Players")
    players_table.add_column("#", justify="right")
    players_table.add_column("Name", style="cyan")
    players_table.add_column("Team")
    players_table.add_column("Score", justify="right")
    players_table.add_column("Skill", justify="right")
    players_table.add_column("Hits", justify="right")
    players_table.add_column("Deaths", justify="right")
    players_table.add_column("Accuracy", justify="right")
    players_table.add_column("Trophy", style="yellow")
    for player in game.players_sorted:
        players_table.add_row(
            str(player.position),
            player.name,
            player.team.name if player.team is not None else "-",
            str(player.score),
            str(player.skill),
            str(player.hits),
            str(player.deaths),
            f"{player.accuracy:.2f}%",
            str(result.trophies.get(player.vest, "")),
        )
    console.print(players_table)

    if game.teams:
        teams_table = Table(title="Teams")
        teams_table.add_column("#", justify="right")
        teams_table.add_column("Team", style="cyan")
        teams_table.add_column("Players", justify="right")
        teams_table.add_column("Score", justify="right")
        for team in game.teams_sorted:
            teams_table.add_row(
                str(team.position), team.name, str(team.player_count), str(team.total_score)
            )
        console.print(teams_table)

    if output:
        with open(output, "w") as f:
            json.dump(game_to_dict(game), f, indent=2)
        console.print(f"\n[green]Processed game written to:[/green] {output}")


@app.command("resolve-mode")
def resolve_mode(
    name: str = typer.Argument(..., help="Mode name as sent by the console"),
    system: Optional[str] = typer.Option(
        None, "--system", "-s", help="System (evo5, evo6, laserForce), comma list allowed"
    ),
    game_type: GameModeType = typer.Option(
        GameModeType.TEAM, "--type", "-t", case_sensitive=False, help="TEAM or SOLO"
    ),
    modes_file: Optional[Path] = typer.Option(
        None, "--modes", "-m", help="JSON list of stored game modes"
    ),
) -> None:
    """Show which mode variant a name resolves to."""
    registry = _build_registry(modes_file)
    try:
        mode = registry.find(name, game_type, system)
    except LaserScoreError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    table = Table(title=f"Mode '{name}'", show_header=False)
    table.add_column("Property", style="cyan")
    table.add_column("Value")
    table.add_row("Variant", mode.key)
    table.add_row("Class", type(mode).__name__)
    table.add_row("Registered for", mode.scope.value if mode.scope else "all systems")
    table.add_row("System", mode.system.value if mode.system else "-")
    table.add_row("Type", mode.type.value)
    table.add_row("Stored mode id", str(mode.id) if mode.id is not None else "-")
    table.add_row("Rankable", "Yes" if mode.rankable else "No")
    console.print(table)


@baselines_app.command("recompute")
def baselines_recompute(
    history: Optional[Path] = typer.Option(
        None, "--history", "-H", help="CSV of historical player rows"
    ),
    db: Optional[Path] = typer.Option(None, "--db", help="SQLite database to store baselines in"),
    arena: Optional[list[int]] = typer.Option(None, "--arena", "-a", help="Arena ids"),
    modes_file: Optional[Path] = typer.Option(
        None, "--modes", "-m", help="JSON list of stored game modes"
    ),
) -> None:
    """Recompute every regression baseline."""
    if history is None and db is None:
        console.print("[red]Error:[/red] provide --history or --db")
        raise typer.Exit(1)

    store = _build_store(history, db)
    summary = store.recompute_all(arena or [], _load_mode_rows(modes_file))

    table = Table(title="Baseline recompute")
    table.add_column("Result", style="cyan")
    table.add_column("Count", justify="right")
    table.add_row("Computed", str(len(summary.computed)))
    table.add_row("Skipped (insufficient data)", str(len(summary.skipped)))
    table.add_row("Failed", str(len(summary.failed)))
    table.add_row("Duration", f"{summary.duration_seconds:.1f}s")
    console.print(table)

    for key, error in summary.failed.items():
        console.print(f"[red]{key}:[/red] {error}")
    if summary.failed:
        raise typer.Exit(1)


@baselines_app.command("show")
def baselines_show(
    db: Path = typer.Option(..., "--db", help="SQLite database with baselines"),
) -> None:
    """List stored baselines."""
    from laserscore.infra.database import DatabaseManager

    rows = DatabaseManager(db).list_baselines()
    if not rows:
        console.print("[yellow]No baselines stored[/yellow]")
        return

    table = Table(title="Stored baselines")
    table.add_column("Key", style="cyan")
    table.add_column("Statistic")
    table.add_column("Type")
    table.add_column("Teams", justify="right")
    table.add_column("Model")
    table.add_column("R²", justify="right")
    table.add_column("Rows", justify="right")
    for row in rows:
        table.add_row(
            row["key"],
            row["statistic"] or "-",
            row["game_type"] or "-",
            str(row["team_count"]),
            row["expansion"] or "-",
            f"{row['r_squared']:.3f}",
            str(row["row_count"]),
        )
    console.print(table)


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
