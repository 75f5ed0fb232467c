"""Pytest configuration.

Ensures the `src.*` packages import the same way during test collection as
they do under uvicorn.
"""

import sys
from pathlib import Path


def _prepend_sys_path(path: Path) -> None:
    resolved = str(path.resolve())
    if resolved not in sys.path:
        sys.path.insert(0, resolved)


REPO_ROOT = Path(__file__).resolve().parent

_prepend_sys_path(REPO_ROOT)
