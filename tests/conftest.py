# tests/conftest.py
"""Pytest configuration and shared fixtures for gogplot tests."""
from __future__ import annotations

import math
import sys
from pathlib import Path

import pytest


def pytest_configure() -> None:
    # Ensure gogplot package is importable when running tests from repo root.
    repo_root = Path(__file__).resolve().parents[1]
    src_dir = repo_root / "src"
    if src_dir.exists() and str(src_dir) not in sys.path:
        sys.path.insert(0, str(src_dir))


@pytest.fixture
def speakers():
    """Small speaker table: age, gender, vocal tract length and two formants.

    Row 6 has a missing vtl and row 7 a missing age.
    """
    from gogplot.frame.table import Table

    return Table.from_records([
        {"speaker": "s1", "age": 4, "gender": "M", "vtl": 10.1, "F1": 1100.0, "F2": 2900.0},
        {"speaker": "s2", "age": 4, "gender": "F", "vtl": 9.8, "F1": 1150.0, "F2": 3000.0},
        {"speaker": "s3", "age": 6, "gender": "M", "vtl": 11.0, "F1": 1000.0, "F2": 2700.0},
        {"speaker": "s4", "age": 6, "gender": "F", "vtl": 10.6, "F1": 1050.0, "F2": 2800.0},
        {"speaker": "s5", "age": 8, "gender": "M", "vtl": 12.2, "F1": 900.0, "F2": 2500.0},
        {"speaker": "s6", "age": 8, "gender": "F", "vtl": math.nan, "F1": 950.0, "F2": 2600.0},
        {"speaker": "s7", "age": math.nan, "gender": "F", "vtl": 11.5, "F1": 980.0, "F2": 2650.0},
    ])
