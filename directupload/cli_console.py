"""Console rendering of upload lifecycle events for the CLI."""
from __future__ import annotations

from typing import Any, Dict, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .errors import StorageRejected, TransportError, UploadError
from .models import SelectedFile, StorageResponse, UploadAttempt


console = Console()


def _human_size(value: int) -> str:
    size = float(max(value, 0))
    units = ["B", "KB", "MB", "GB", "TB"]
    unit_idx = 0
    while size >= 1024.0 and unit_idx < len(units) - 1:
        size /= 1024.0
        unit_idx += 1
    if unit_idx == 0:
        return f"{int(size)} {units[unit_idx]}"
    return f"{size:.2f} {units[unit_idx]}"


def describe_error(error: UploadError) -> str:
    """One-line description of an upload failure."""
    kind = type(error).__name__
    if isinstance(error, TransportError) and error.status_code is not None:
        return f"{kind} (HTTP {error.status_code}): {error}"
    if isinstance(error, StorageRejected) and error.code:
        return f"{kind}: {error.code} - {error.message or error}"
    return f"{kind}: {error}"


def render_configuration_summary(config: Dict[str, Any]) -> None:
    """Render startup configuration summary."""
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold cyan", justify="right")
    table.add_column(style="white")

    for key, value in config.items():
        rendered = "-" if value is None else str(value)
        table.add_row(key, rendered)

    panel = Panel(
        table,
        title="[bold green]direct-up[/bold green]",
        subtitle="[dim]direct upload CLI[/dim]",
        border_style="blue",
    )
    console.print(panel)


class ConsoleObserver:
    """Prints one line per lifecycle notification of the orchestrator."""

    def __init__(self, out: Optional[Console] = None):
        self._console = out or console
        self.outcome: Optional[str] = None

    def attach(self, orchestrator) -> "ConsoleObserver":
        orchestrator.on_attempt_started(self.on_attempt_started)
        orchestrator.on_upload_begin(self.on_upload_begin)
        orchestrator.on_failure(self.on_failure)
        orchestrator.on_success(self.on_success)
        return self

    def on_attempt_started(self, file: SelectedFile) -> None:
        self._console.print(
            f"[cyan]Signing:[/cyan] {file.name} ({file.mime_type}, {_human_size(file.size)})"
        )

    def on_upload_begin(self, attempt: UploadAttempt) -> None:
        self._console.print(f"[cyan]Uploading:[/cyan] {attempt.file.name}")

    def on_failure(self, attempt: UploadAttempt, error: UploadError) -> None:
        self.outcome = "failed"
        self._console.print(f"[red]Failed:[/red] {attempt.file.name} - {describe_error(error)}")

    def on_success(self, attempt: UploadAttempt, response: StorageResponse) -> None:
        self.outcome = "succeeded"
        target = response.location or response.key or attempt.file.name
        self._console.print(f"[green]Uploaded:[/green] {attempt.file.name} -> {target}")
