import json
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from blockvm.src.services.config import get_config
from blockvm.src.vm.core.machine import VM
from blockvm.src.vm.loader import load_definitions
from blockvm.src.vm.state.base import VMError
from blockvm.src.vm.state.value import to_string

logger = logging.getLogger(__name__)

APP_HELP = """
blockvm: run Scratch 3 projects headless.

Loads a project.json or .sb3 file, presses the green flag and ticks the
VM. Nothing is rendered; the final state of every sprite and the
monitored variables are printed instead.
"""

app = typer.Typer(name="blockvm", help=APP_HELP, no_args_is_help=True)
console = Console()


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(
        None, "--log-level", "-l", help="Override BLOCKVM_LOG_LEVEL (DEBUG, INFO, ...)"
    ),
):
    """
    Block VM command line host.
    """
    level = (log_level or get_config().log_level).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def _load(project: Path):
    try:
        return load_definitions(project)
    except VMError as e:
        console.print(f"[red]Cannot load {project}: {e}[/red]")
        raise typer.Exit(code=1)


@app.command()
def run(
    project: Path = typer.Argument(..., help="Path to project.json or an .sb3 archive"),
    ticks: Optional[int] = typer.Option(
        None, "--ticks", "-n", help="Maximum ticks to run (default: until idle)"
    ),
    seed: Optional[int] = typer.Option(None, "--seed", "-s", help="Random seed"),
    realtime: bool = typer.Option(False, "--realtime", help="Pace ticks at the configured rate"),
    json_output: bool = typer.Option(False, "--json", help="Output the final snapshot as JSON"),
):
    """
    Load a project, press the green flag and run it.
    """
    config = get_config()
    if seed is not None:
        config = config.model_copy(update={"random_seed": seed})

    definitions = _load(project)
    vm = VM.from_definitions(definitions, config=config)
    vm.start()
    try:
        ran = vm.run(max_ticks=ticks, realtime=realtime)
    except KeyboardInterrupt:
        console.print("[yellow]Interrupted[/yellow]")
        ran = vm.tick_count
    finally:
        snapshot = vm.snapshot()
        idle = "idle" if vm.is_idle else "still running"
        vm.shutdown()

    if json_output:
        print(json.dumps(snapshot.model_dump(), indent=2, default=str))
        return

    console.print(f"[bold blue]Ran {ran} ticks[/bold blue] [dim]({idle})[/dim]")
    console.print()

    readings = vm.monitored_values()
    if readings:
        table = Table(title="Monitors", show_header=True)
        table.add_column("Owner", style="cyan")
        table.add_column("Name")
        table.add_column("Value")
        for reading in readings:
            table.add_row(reading.owner, reading.name, to_string(reading.value))
        console.print(table)
        console.print()

    table = Table(title="Sprites", show_header=True)
    table.add_column("Instance", style="cyan")
    table.add_column("Position")
    table.add_column("Dir")
    table.add_column("Costume")
    table.add_column("Visible")
    table.add_column("Bubble")
    for sprite in snapshot.sprites:
        bubble = f"{sprite.bubble.kind}: {sprite.bubble.text}" if sprite.bubble else ""
        table.add_row(
            sprite.instance_id,
            f"({to_string(sprite.x)}, {to_string(sprite.y)})",
            to_string(sprite.direction),
            sprite.costume_name,
            "[green]yes[/green]" if sprite.visible else "[dim]no[/dim]",
            bubble,
        )
    console.print(table)

    if snapshot.globals:
        console.print()
        table = Table(title="Globals", show_header=True)
        table.add_column("Name", style="cyan")
        table.add_column("Value")
        for name, value in snapshot.globals.items():
            table.add_row(name, to_string(value))
        console.print(table)


@app.command()
def inspect(
    project: Path = typer.Argument(..., help="Path to project.json or an .sb3 archive"),
):
    """
    List targets, their scripts and block counts without running anything.
    """
    definitions = _load(project)

    table = Table(title=f"{project.name}", show_header=True)
    table.add_column("Target", style="cyan")
    table.add_column("Blocks", justify="right")
    table.add_column("Scripts")
    table.add_column("Variables")
    for definition in definitions:
        hats = [
            definition.graph.get(hat_id).kind.value for hat_id in definition.graph.hats
        ]
        names = [name for name, _ in definition.variables.values()]
        names += [f"{name}[]" for name, _ in definition.lists.values()]
        table.add_row(
            f"{definition.name} [dim](stage)[/dim]" if definition.is_stage else definition.name,
            str(len(definition.graph)),
            "\n".join(hats) or "[dim]-[/dim]",
            ", ".join(names) or "[dim]-[/dim]",
        )
    console.print(table)


if __name__ == "__main__":
    app()
