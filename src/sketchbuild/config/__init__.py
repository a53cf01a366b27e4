"""Configuration modules for sketchbuild."""

from .board_config import BoardConfigError, BuildConfiguration
from .targets import HardwareTargets, TargetError

__all__ = [
    "BuildConfiguration",
    "BoardConfigError",
    "HardwareTargets",
    "TargetError",
]
