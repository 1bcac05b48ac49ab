"""Tests for console UI wrapper."""

from io import StringIO
from unittest.mock import patch

from rich.console import Console
from rich.table import Table

from reelfeed.ui.console import ConsoleUI


class TestConsoleUI:
    """Tests for ConsoleUI class."""

    def test_initialization(self):
        """ConsoleUI initializes with Rich Console."""
        ui = ConsoleUI()
        assert ui.console is not None

    def test_print_delegates_to_console(self):
        """print() delegates to Rich Console."""
        ui = ConsoleUI()
        with patch.object(ui.console, 'print') as mock_print:
            ui.print("test message")
            mock_print.assert_called_once_with("test message")

    def test_rule_delegates_to_console(self):
        ui = ConsoleUI()
        with patch.object(ui.console, 'rule') as mock_rule:
            ui.rule("Test Rule")
            mock_rule.assert_called_once_with("Test Rule")

    def test_styled_messages(self):
        """Styled helpers keep the message text."""
        ui = ConsoleUI()
        with patch.object(ui.console, 'print') as mock_print:
            for method in (ui.print_warning, ui.print_error, ui.print_success):
                method("Styled message")
                assert "Styled message" in mock_print.call_args[0][0]
            assert mock_print.call_count == 3

    def test_video_header_is_one_based(self):
        """The header counts videos from 1."""
        ui = ConsoleUI()
        with patch.object(ui.console, 'rule') as mock_rule:
            ui.video_header(0, 12)
            assert "Video 1/12" in mock_rule.call_args[0][0]

    def test_print_counters_keeps_order(self):
        """Counters are printed on one line in the given order."""
        ui = ConsoleUI(Console(file=StringIO(), width=120, color_system=None))
        ui.print_counters([("Hits", 3), ("Misses", 1)])
        assert ui.console.file.getvalue().strip() == "Hits: 3  Misses: 1"


class TestConsoleUITable:
    """Tests for table helpers."""

    def test_create_table_with_columns(self):
        table = ConsoleUI().create_table("Title", ["A", "B"])
        assert isinstance(table, Table)
        assert [column.header for column in table.columns] == ["A", "B"]

    def test_create_table_without_columns(self):
        assert len(ConsoleUI().create_table("Empty").columns) == 0
