"""console output sinks and progress display for nugetkit operations."""

import logging
import sys
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable, Optional
from rich.console import Console
from rich.progress import (
    Progress,
    SpinnerColumn,
    TextColumn,
    TaskID,
)

logger = logging.getLogger(__name__)


class ConsoleOutput:
    """
    forwards free-text progress lines to an optional callback.

    the callback only observes; if it raises, the error is logged and the
    operation that produced the line carries on.
    """

    def __init__(self, callback: Optional[Callable[[str], None]] = None):
        self.callback = callback

    def write(self, line: str):
        if self.callback is None:
            return
        try:
            self.callback(line)
        except Exception as e:
            logger.error(f"console output callback failed: {e}")

    def command_started(self, tool: str, purpose: str, arguments: str):
        self.write(
            f"{_utc_now()}: Run {tool} to {purpose}, using the following arguments\n{arguments}\n"
        )

    def command_completed(self, tool: str, output: str):
        self.write(f"{output}\n{_utc_now()}: Run {tool} completed\n")


def _utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


class ProgressManager:
    """rich output for the cli: a spinner while nuget works, raw nuget output when verbose."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()
        # piped output gets plain lines instead of a spinner
        self.interactive = sys.stdout.isatty() and not sys.stdout.closed

    def console_output(self, verbose: bool = False) -> ConsoleOutput:
        """a ConsoleOutput that prints dimmed lines on this console when verbose."""
        if not verbose:
            return ConsoleOutput()
        return ConsoleOutput(lambda line: self.console.print(line, style="dim", markup=False))

    @contextmanager
    def spinner(self, description: str):
        """
        show description next to a spinner until the block exits.

        yields:
            the rich task id, or None when not interactive
        """
        if not self.interactive:
            self.console.print(f"{description}...")
            yield None
            return

        columns = (SpinnerColumn(), TextColumn("[progress.description]{task.description}"))
        with Progress(*columns, console=self.console, transient=True) as progress:
            task_id: TaskID = progress.add_task(description, total=None)
            yield task_id
