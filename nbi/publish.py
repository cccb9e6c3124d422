"""Publish a package with the ecosystem's own toolchain.

Pure process delegation: each step runs in the package directory and a
non-zero exit (or a missing tool) raises :class:`PublishError`.
"""

from __future__ import annotations

import logging
import subprocess
import sys
from pathlib import Path

logger = logging.getLogger(__name__)

STEPS: dict[str, list[list[str]]] = {
    "npm": [["npm", "publish"]],
    "crates": [["cargo", "publish"]],
    "pypi": [
        [sys.executable, "-m", "build"],
        [sys.executable, "-m", "twine", "upload", "dist/*"],
    ],
}

LABELS = {"npm": "npm", "crates": "crates.io", "pypi": "PyPI"}


class PublishError(Exception):
    """Raised when a publish step cannot run or exits non-zero."""


def run_publish(ecosystem: str, path: str | Path = ".") -> None:
    if ecosystem not in STEPS:
        raise PublishError(f"Unknown ecosystem '{ecosystem}'. Choose from: {list(STEPS)}")
    cwd = Path(path)
    if not cwd.is_dir():
        raise PublishError(f"Package directory does not exist: {cwd}")

    print(f"Publishing to {LABELS[ecosystem]} from: {cwd}", flush=True)
    for command in STEPS[ecosystem]:
        # twine expands the dist/* glob itself, so no shell is needed.
        logger.info("Running %s in %s", " ".join(command), cwd)
        try:
            result = subprocess.run(command, cwd=cwd)
        except FileNotFoundError as exc:
            raise PublishError(f"{command[0]} not found: {exc}") from exc
        if result.returncode != 0:
            raise PublishError(f"{' '.join(command)} failed (exit {result.returncode})")
    print("✓ Published successfully!", flush=True)
