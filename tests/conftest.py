"""
Shared pytest setup for the Kevlar test suite.

Makes the ``kevlar`` package importable from a source checkout without an
editable install.
"""
import sys
from pathlib import Path

src_path = Path(__file__).resolve().parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))
