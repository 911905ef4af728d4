"""test suite for console output and progress manager."""
import pytest
from pathlib import Path
import sys
from unittest.mock import Mock, patch

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from nugetkit.ui.progress import ConsoleOutput, ProgressManager


class TestConsoleOutput:
    """test the console output callback."""

    def test_no_callback_is_silent(self):
        """test writing without a callback does nothing."""
        ConsoleOutput().write("ignored")

    def test_callback_receives_lines(self):
        """test every line reaches the callback."""
        lines = []
        output = ConsoleOutput(lines.append)
        output.write("one")
        output.write("two")
        assert lines == ["one", "two"]

    def test_failing_callback_is_logged(self, caplog):
        """test a raising callback does not interrupt the caller."""
        output = ConsoleOutput(Mock(side_effect=RuntimeError("sink closed")))
        output.write("line")
        assert "sink closed" in caplog.text

    def test_command_started_and_completed(self):
        """test the framing around a collaborator run."""
        lines = []
        output = ConsoleOutput(lines.append)
        output.command_started("nuget.exe", "list latest package for packageId 'x'", "list x -prerelease")
        output.command_completed("nuget.exe", "x 1.0.0")

        assert "Run nuget.exe to list latest package for packageId 'x', using the following arguments" in lines[0]
        assert lines[0].endswith("list x -prerelease\n")
        assert lines[1].startswith("x 1.0.0\n")
        assert lines[1].endswith("Run nuget.exe completed\n")


class TestProgressManager:
    """test the cli's spinner and verbose output."""

    @pytest.fixture
    def mock_console(self):
        from rich.console import Console
        return Mock(spec=Console)

    def test_piped_output_is_not_interactive(self):
        """test no spinner is used when stdout is not a terminal."""
        with patch('sys.stdout.isatty', return_value=False):
            assert ProgressManager().interactive is False

    def test_spinner_on_terminal(self):
        """test the spinner yields a task while a lookup runs."""
        with patch('sys.stdout.isatty', return_value=True):
            pm = ProgressManager()

            with pm.spinner("looking up Newtonsoft.Json") as task_id:
                assert task_id is not None

    def test_spinner_when_piped_prints_description(self, mock_console):
        """test a piped download announces itself with a plain line."""
        with patch('sys.stdout.isatty', return_value=False):
            pm = ProgressManager(console=mock_console)

            with pm.spinner("downloading Newtonsoft.Json") as task_id:
                assert task_id is None

            mock_console.print.assert_called_once_with("downloading Newtonsoft.Json...")

    def test_spinner_propagates_errors(self):
        """test a failing download still ends the spinner and raises."""
        with patch('sys.stdout.isatty', return_value=True):
            pm = ProgressManager()

            with pytest.raises(ValueError):
                with pm.spinner("downloading Broken.Package"):
                    raise ValueError("nuget failed")

    def test_quiet_console_output(self, mock_console):
        """test non-verbose nuget output is dropped."""
        pm = ProgressManager(console=mock_console)

        pm.console_output(verbose=False).write("hidden")
        mock_console.print.assert_not_called()

    def test_verbose_console_output(self, mock_console):
        """test verbose nuget output is printed dimmed and unmarked."""
        pm = ProgressManager(console=mock_console)

        pm.console_output(verbose=True).write("[nuget.exe] list Pkg")
        mock_console.print.assert_called_once_with("[nuget.exe] list Pkg", style="dim", markup=False)
