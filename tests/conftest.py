"""Pytest configuration.

The project does not require installation as an editable package for
development. In CI/automation environments, however, `pytest` may be executed
without the repository root on `sys.path`, which breaks imports like
`import ob_core...`.

This file ensures the repository root (and this directory, for the shared
`fakes` helpers) is importable.
"""

from __future__ import annotations

import sys
from pathlib import Path


TESTS = Path(__file__).resolve().parent
ROOT = TESTS.parent
for p in (ROOT, TESTS):
    if str(p) not in sys.path:
        sys.path.insert(0, str(p))
