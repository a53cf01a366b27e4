"""
Setup file.
"""

import os

from setuptools import find_packages, setup

URL = "https://github.com/zackees/sketchbuild"
KEYWORDS = "embedded arduino sketch compiler toolchain firmware microcontroller incremental build"
HERE = os.path.dirname(os.path.abspath(__file__))


def read_version() -> str:
    with open(os.path.join(HERE, "src", "sketchbuild", "__init__.py"), encoding="utf-8") as f:
        for line in f:
            if line.startswith("__version__"):
                return line.split("=", 1)[1].strip().strip('"')
    raise RuntimeError("Unable to find __version__")


if __name__ == "__main__":
    setup(
        name="sketchbuild",
        version=read_version(),
        description="Incremental build orchestrator for Arduino-style sketches",
        maintainer="Zachary Vorhies",
        keywords=KEYWORDS,
        url=URL,
        python_requires=">=3.10",
        package_dir={"": "src"},
        packages=find_packages(where="src"),
        install_requires=[
            "psutil",
            "tqdm",
        ],
        extras_require={
            "test": [
                "pytest",
            ],
        },
        entry_points={
            "console_scripts": [
                "sketchbuild = sketchbuild.cli:main",
            ],
        },
        include_package_data=True)
