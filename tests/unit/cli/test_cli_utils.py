"""Unit tests for CLI utilities."""

import pytest

from sketchbuild.build.diagnostics import Diagnostic, SourceReference
from sketchbuild.cli_utils import BuildProgressBar, ErrorFormatter, MenuSelectionParser


class TestMenuSelectionParser:
    """Tests for MenuSelectionParser."""

    def test_parse(self):
        assert MenuSelectionParser.parse(["cpu=8mhz", " usb = serial "]) == {
            "cpu": "8mhz",
            "usb": "serial",
        }

    def test_value_may_contain_equals(self):
        assert MenuSelectionParser.parse(["opt=a=b"]) == {"opt": "a=b"}

    def test_none(self):
        assert MenuSelectionParser.parse(None) == {}

    @pytest.mark.parametrize("bad", ["cpu", "=8mhz"])
    def test_invalid(self, bad):
        with pytest.raises(ValueError):
            MenuSelectionParser.parse([bad])


class TestErrorFormatter:
    """Tests for diagnostic formatting."""

    def test_located_diagnostic(self):
        diagnostic = Diagnostic(
            source_file="Blink.cpp",
            source_line=14,
            raw_message="'BYTE' was not declared in this scope",
            friendly_message="The 'BYTE' keyword is no longer supported.",
            note="\nPlease use Serial.write() instead.\n\n",
            location=SourceReference(0, 11, "Blink.ino"),
        )

        assert ErrorFormatter.format_diagnostic(diagnostic) == (
            "Blink.ino:12: The 'BYTE' keyword is no longer supported.\n"
            "Please use Serial.write() instead."
        )

    def test_unlocated_diagnostic(self):
        diagnostic = Diagnostic(
            source_file="Wire.cpp", source_line=3, raw_message="expected ';'"
        )
        assert ErrorFormatter.format_diagnostic(diagnostic) == "Wire.cpp:3: expected ';'"

    def test_link_diagnostic(self):
        diagnostic = Diagnostic(
            source_file=None,
            source_line=None,
            raw_message="undefined reference to `Wire'",
            friendly_message="Please import the Wire library from the Sketch > Import Library menu.",
        )
        assert ErrorFormatter.format_diagnostic(diagnostic).startswith("Please import the Wire library")

    def test_print_error(self, capsys):
        ErrorFormatter.print_error("Build failed!", "details")
        out = capsys.readouterr().out
        assert "Build failed!" in out
        assert "details" in out


class TestBuildProgressBar:
    """Tests for the progress bar wrapper."""

    def test_progress_only_moves_forward(self):
        bar = BuildProgressBar()
        bar.update(30)
        bar.update(20)
        bar.update(100)
        assert bar._bar.n == 100
        bar.close()

    def test_log_writes_above_bar(self, capsys):
        bar = BuildProgressBar(enabled=False)
        bar.log("compiling Blink.cpp")
        bar.close()
        assert "compiling Blink.cpp" in capsys.readouterr().err
