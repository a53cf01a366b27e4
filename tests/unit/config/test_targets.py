"""Unit tests for hardware target resolution."""

import pytest

from sketchbuild.config.targets import HardwareTargets, TargetError


@pytest.fixture
def hardware(tmp_path):
    for provider in ("arduino", "teensy"):
        (tmp_path / provider / "cores").mkdir(parents=True)
        (tmp_path / provider / "boards.txt").write_text("")
    (tmp_path / "tools").mkdir()
    return tmp_path.resolve()


class TestHardwareTargets:
    """Test directory resolution inside a hardware folder."""

    def test_layout(self, hardware):
        targets = HardwareTargets(hardware, "teensy")

        assert targets.provider_dir == hardware / "teensy"
        assert targets.boards_txt == hardware / "teensy" / "boards.txt"
        assert targets.tools_dir == hardware / "tools"

    def test_resolve_plain(self, hardware):
        targets = HardwareTargets(hardware)

        assert targets.resolve_core("arduino") == hardware / "arduino" / "cores" / "arduino"
        assert targets.resolve_variant("standard") == hardware / "arduino" / "variants" / "standard"

    def test_resolve_namespaced(self, hardware):
        """Test provider:name borrows a core from another provider."""
        targets = HardwareTargets(hardware, "teensy")

        assert targets.resolve_core("arduino:arduino") == hardware / "arduino" / "cores" / "arduino"

    def test_unknown_provider(self, hardware):
        with pytest.raises(TargetError, match="Unknown hardware provider 'sparkfun'"):
            HardwareTargets(hardware).resolve_core("sparkfun:core")

    def test_providers(self, hardware):
        assert HardwareTargets(hardware).providers() == ["arduino", "teensy"]

    def test_toolchain_bin_dir(self, hardware, tmp_path):
        """Test the bundled toolchain is used only when present."""
        targets = HardwareTargets(hardware)
        assert targets.toolchain_bin_dir is None

        (hardware / "tools" / "avr" / "bin").mkdir(parents=True)
        assert targets.toolchain_bin_dir == hardware / "tools" / "avr" / "bin"

        explicit = HardwareTargets(hardware, toolchain_bin_dir=tmp_path / "bin")
        assert explicit.toolchain_bin_dir == tmp_path / "bin"
