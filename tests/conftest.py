"""Pytest configuration.

Tests import the packages straight from the checkout, so `pytest` run from any
directory still needs the repository root on `sys.path` for imports like
`import feed_core...`.
"""

from __future__ import annotations

import sys
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
