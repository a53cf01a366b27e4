"""Tests for CLI build command."""

from unittest.mock import MagicMock, patch

import pytest

from sketchbuild.build import BuildResult
from sketchbuild.cli import default_build_dir, main


class TestCLIBuild:
    """Tests for the 'sketchbuild build' command."""

    @pytest.fixture
    def args(self, fake_toolchain):
        def make(sketch, *extra):
            return [
                "build",
                str(sketch),
                "--hardware",
                str(fake_toolchain.hardware_dir),
                "--libraries",
                str(fake_toolchain.libraries_dir),
                "--build-dir",
                str(fake_toolchain.root / "build"),
                *extra,
            ]

        return make

    def test_build_success(self, fake_toolchain, args, capsys):
        """Test a successful build exits 0 and reports the images."""
        sketch = fake_toolchain.make_sketch("Blink", "#include <Wire.h>\nvoid setup() {}\nvoid loop() {}\n")

        with pytest.raises(SystemExit) as exc_info:
            main(args(sketch, "--board", "uno"))

        assert exc_info.value.code == 0
        out = capsys.readouterr().out
        assert "Build successful!" in out
        assert "Blink.cpp.hex" in out
        assert (fake_toolchain.root / "build" / "Wire" / "Wire.cpp.o").exists()

    def test_build_with_menu(self, fake_toolchain, args):
        """Test --menu selections reach the compiler command line."""
        sketch = fake_toolchain.make_sketch("Blink", "void setup() {}\nvoid loop() {}\n")

        with pytest.raises(SystemExit) as exc_info:
            main(args(sketch, "--board", "mega", "--menu", "cpu=8mhz"))

        assert exc_info.value.code == 0
        assert all("-DF_CPU=8000000L" in call for call in fake_toolchain.compile_calls())

    def test_compile_error_reported(self, fake_toolchain, args, capsys):
        """Test an attributed error is printed as tab:line with its note."""
        sketch = fake_toolchain.make_sketch(
            "Broken", "void setup() {\n}\nvoid loop() { Serial.print(1, BYTE); }\n"
        )

        with pytest.raises(SystemExit) as exc_info:
            main(args(sketch, "--board", "uno"))

        assert exc_info.value.code == 1
        out = capsys.readouterr().out
        assert "Broken.ino:3: The 'BYTE' keyword is no longer supported." in out
        assert "Please use Serial.write() instead." in out

    def test_unknown_board(self, fake_toolchain, args, capsys):
        sketch = fake_toolchain.make_sketch("Blink", "void setup() {}\n")

        with pytest.raises(SystemExit) as exc_info:
            main(args(sketch, "--board", "leonardo"))

        assert exc_info.value.code == 1
        assert "Board 'leonardo' not found" in capsys.readouterr().out

    def test_bad_menu_argument(self, fake_toolchain, args, capsys):
        sketch = fake_toolchain.make_sketch("Blink", "void setup() {}\n")

        with pytest.raises(SystemExit) as exc_info:
            main(args(sketch, "--board", "uno", "--menu", "cpu"))

        assert exc_info.value.code == 1
        assert "expected MENU=OPTION" in capsys.readouterr().out

    def test_missing_sketch_folder(self, tmp_path):
        with pytest.raises(SystemExit) as exc_info:
            main(["build", str(tmp_path / "nope"), "--hardware", str(tmp_path), "--board", "uno"])

        assert exc_info.value.code == 2

    def test_no_command_prints_help(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main([])

        assert exc_info.value.code == 0
        assert "usage: sketchbuild" in capsys.readouterr().out

    def test_clean_removes_build_dir(self, fake_toolchain, args):
        """Test --clean removes the previous build directory."""
        sketch = fake_toolchain.make_sketch("Blink", "void setup() {}\nvoid loop() {}\n")
        stale = fake_toolchain.root / "build" / "stale.txt"
        stale.parent.mkdir(parents=True)
        stale.write_text("old")

        with pytest.raises(SystemExit):
            main(args(sketch, "--board", "uno", "--clean"))

        assert not stale.exists()

    def test_orchestrator_wiring(self, fake_toolchain, args, tmp_path):
        """Test the CLI hands the sketch and build dir to the orchestrator."""
        sketch = fake_toolchain.make_sketch("Blink", "void setup() {}\n")
        result = BuildResult(
            success=True,
            elf_path=tmp_path / "Blink.cpp.elf",
            hex_path=tmp_path / "Blink.cpp.hex",
            eep_path=tmp_path / "Blink.cpp.eep",
            build_time=0.5,
            message="Build successful",
        )

        with patch("sketchbuild.cli.BuildOrchestrator") as mock_orch_class:
            mock_instance = MagicMock()
            mock_instance.build.return_value = result
            mock_orch_class.return_value = mock_instance

            with pytest.raises(SystemExit) as exc_info:
                main(args(sketch, "--board", "uno", "--verbose"))

        assert exc_info.value.code == 0
        assert mock_orch_class.call_args.kwargs["verbose"] is True
        built_sketch, build_dir = mock_instance.build.call_args.args
        assert built_sketch.name == "Blink"
        assert build_dir == fake_toolchain.root / "build"

    def test_default_build_dir(self, tmp_path):
        assert default_build_dir(tmp_path, "uno") == tmp_path.resolve() / ".sketchbuild" / "build" / "uno"
