"""Tests for core archiving and post-link binary steps."""

from pathlib import Path
from unittest.mock import MagicMock

from sketchbuild.build.archive_creator import ArchiveCreator
from sketchbuild.build.binary_generator import BinaryGenerator
from sketchbuild.config import BuildConfiguration


class TestArchiveCreator:
    """Test core.a creation."""

    def test_one_invocation_per_object(self, tmp_path):
        runner = MagicMock()
        objects = [tmp_path / "main.cpp.o", tmp_path / "wiring.c.o"]

        archive = ArchiveCreator(runner, "avr-ar").create_core_archive(tmp_path, objects)

        assert archive == tmp_path / "core.a"
        assert [call.args[0] for call in runner.run.call_args_list] == [
            ["avr-ar", "rcs", str(archive), str(objects[0])],
            ["avr-ar", "rcs", str(archive), str(objects[1])],
        ]

    def test_no_objects(self, tmp_path):
        runner = MagicMock()
        ArchiveCreator(runner, "avr-ar").create_core_archive(tmp_path, [])
        runner.run.assert_not_called()


class TestBinaryGenerator:
    """Test ELF patching, image extraction and post-build scripts."""

    def make(self, values, runner=None):
        runner = runner or MagicMock()
        config = BuildConfiguration(dict({"build.mcu": "mk20dx256"}, **values), board_id="teensy31")
        return BinaryGenerator(runner, config, "objcopy", Path("/hw/tools")), runner

    def test_patch_not_configured(self):
        generator, runner = self.make({})
        assert generator.patch_elf(Path("/b/x.elf"), Path("/s/x")) is False
        runner.run.assert_not_called()

    def test_patch_configured(self):
        generator, runner = self.make({"build.elfpatch": "teensy_patch"})

        assert generator.patch_elf(Path("/b/x.elf"), Path("/s/x")) is True
        command = runner.run.call_args.args[0]
        assert command[0] == str(Path("/hw/tools/teensy_patch"))
        assert command[1] == "-mmcu=mk20dx256"

    def test_images(self):
        generator, runner = self.make({})

        assert generator.generate_eep(Path("/b/x.elf"), Path("/b/x.eep")) == Path("/b/x.eep")
        assert generator.generate_hex(Path("/b/x.elf"), Path("/b/x.hex")) == Path("/b/x.hex")
        assert runner.run.call_count == 2

    def test_post_compile_script(self):
        """Test the post-build script runs through run_simple with its own failure text."""
        generator, runner = self.make({"build.post_compile_script": "teensy_post_compile"})

        assert generator.run_post_compile_script(Path("/b"), "Blink.cpp") is True
        args, kwargs = runner.run_simple.call_args
        assert "-board=teensy31" in args[0]
        assert kwargs["failure_message"] == "Error communicating with teensy_post_compile"

    def test_post_compile_not_configured(self):
        generator, runner = self.make({})
        assert generator.run_post_compile_script(Path("/b"), "Blink.cpp") is False
        runner.run_simple.assert_not_called()
