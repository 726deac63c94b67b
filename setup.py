#!/usr/bin/env python3
"""Setup script for MindCanvas."""

import os
import sys
from setuptools import setup, find_packages


def _run_install_preflight() -> None:
    """Fail fast on unsupported environments.

    Note: installing from a wheel will not execute setup.py, so the desktop
    checks are enforced at runtime via `mindcanvas.launcher`.
    """
    if os.environ.get("MINDCANVAS_SKIP_PREFLIGHT") == "1":
        return
    # Only the interpreter is checked here; GUI libraries are optional extras
    # and may not be installed yet.
    if sys.version_info < (3, 10):
        sys.stderr.write("\nMindCanvas requires Python 3.10 or newer.\n")
        raise SystemExit(1)


_run_install_preflight()

setup(
    name="mindcanvas",
    version="1.0.0",
    description="A mind map editor for Linux backed by a document API",
    author="MindCanvas Project",
    license="MIT",
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={
        "mindcanvas": ["theme.css"],
    },
    include_package_data=True,
    python_requires=">=3.10",
    install_requires=[
        "httpx>=0.27",
    ],
    extras_require={
        "gui": [
            "PyGObject>=3.50.0",
            "pycairo>=1.25.0",
        ],
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "mindcanvas=mindcanvas.launcher:main",
            "mindcanvas-cli=mindcanvas.cli:main",
        ],
        "gui_scripts": [
            "mindcanvas-gui=mindcanvas.launcher:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: X11 Applications :: GTK",
        "Intended Audience :: End Users/Desktop",
        "License :: OSI Approved :: MIT License",
        "Operating System :: POSIX :: Linux",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Office/Business",
    ],
)
