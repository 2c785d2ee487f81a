"""Rich terminal renderer for release runs.

Turns the orchestrator's ``StageMachine`` and the produced artifacts into
Rich renderables: a color-coded stage table and the final checksum lines
printed for manual cross-verification.

Color scheme
------------
- green     : PASSED
- red       : FAILED
- yellow    : RUNNING
- dim       : NOT_STARTED
- bold red  : BLOCKED
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from rich.console import Console, Group
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from releaseforge.models.stages import StageState

if TYPE_CHECKING:
    from releaseforge.core.stage_machine import StageMachine
    from releaseforge.models.artifacts import PublishedRelease, SignedArtifact


_STATE_STYLES: dict[StageState, str] = {
    StageState.PASSED: "bold green",
    StageState.FAILED: "bold red",
    StageState.RUNNING: "bold yellow",
    StageState.NOT_STARTED: "dim",
    StageState.BLOCKED: "bold red",
}

_STATE_ICONS: dict[StageState, str] = {
    StageState.PASSED: "[green]PASSED[/green]",
    StageState.FAILED: "[bold red]FAILED[/bold red]",
    StageState.RUNNING: "[yellow]RUNNING[/yellow]",
    StageState.NOT_STARTED: "[dim]NOT STARTED[/dim]",
    StageState.BLOCKED: "[bold red]BLOCKED[/bold red]",
}


class MonitorRenderer:
    """Renders pipeline state as Rich terminal output.

    Parameters
    ----------
    console:
        Rich Console instance.  A new one is created if not provided.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    # ------------------------------------------------------------------
    # Stage table
    # ------------------------------------------------------------------

    def render_stages(self, machine: StageMachine, *, title: str = "Release Pipeline") -> Panel:
        """Render every stage with its state and last detail as a Panel."""
        table = Table(show_header=True, header_style="bold cyan", expand=True)
        table.add_column("#", style="dim", width=4, justify="right")
        table.add_column("Stage", min_width=22)
        table.add_column("State", min_width=12, justify="center")
        table.add_column("Details", min_width=20)

        details: dict[str, str] = {}
        for record in machine.history:
            if record.detail:
                details[record.stage_id] = escape(record.detail)
            elif record.output_hash:
                details[record.stage_id] = f"[dim]{record.output_hash[:12]}[/dim]"

        states = machine.get_all_states()
        for stage_id in machine.stage_ids:
            definition = machine.definition(stage_id)
            state = states[stage_id]
            style = _STATE_STYLES.get(state, "")
            detail = details.get(stage_id, "[dim]-[/dim]")
            if state == StageState.FAILED:
                detail = f"[red]{detail}[/red]"
            table.add_row(
                str(definition.ordinal),
                f"[{style}]{definition.display_name}[/{style}]",
                _STATE_ICONS.get(state, state.value),
                detail,
            )

        passed = sum(1 for s in states.values() if s == StageState.PASSED)
        summary = Text.from_markup(f"[bold]Progress:[/bold] {passed}/{len(states)}")
        return Panel(
            Group(table, Text(""), summary),
            title=f"[bold]{title}[/bold]",
            border_style="blue",
            padding=(1, 2),
        )

    def print_stages(self, machine: StageMachine, *, title: str = "Release Pipeline") -> None:
        self.console.print(self.render_stages(machine, title=title))

    # ------------------------------------------------------------------
    # Checksums
    # ------------------------------------------------------------------

    def render_checksums(self, rows: Iterable[tuple[str, str]]) -> Text:
        """``sha256sum``-style lines, so they can be pasted into ``sha256sum -c``."""
        text = Text()
        for name, digest in rows:
            text.append(digest, style="green")
            text.append(f"  {name}\n")
        return text

    def print_checksum_rows(self, rows: Iterable[tuple[str, str]]) -> None:
        self.console.print("[bold cyan]Checksums (sha256)[/bold cyan]")
        self.console.print(self.render_checksums(rows), soft_wrap=True, end="")

    def print_checksums(self, artifacts: Iterable[SignedArtifact]) -> None:
        self.print_checksum_rows((a.archive.filename, a.checksum.sha256) for a in artifacts)

    def print_published(self, release: PublishedRelease) -> None:
        lines = [
            f"[bold green]Published {release.version}[/bold green]",
            "",
            f"[bold]Directory:[/bold] {release.version_dir}",
            f"[bold]Files:[/bold]     {len(release.files)}",
            f"[bold]Aliases:[/bold]   {len(release.aliases)}",
            f"[bold]Latest:[/bold]    {release.latest}",
        ]
        self.console.print(
            Panel("\n".join(lines), title="[bold]Release[/bold]", border_style="green", padding=(1, 2))
        )
