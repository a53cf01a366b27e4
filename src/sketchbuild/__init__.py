"""sketchbuild - incremental build orchestrator for Arduino-style sketches."""

__version__ = "0.1.0"
