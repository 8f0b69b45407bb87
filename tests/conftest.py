# tests/conftest.py
from __future__ import annotations

import os
import random
from pathlib import Path

import matplotlib
import numpy as np
import pytest

# Headless backend for every plotting test
matplotlib.use("Agg", force=True)


@pytest.fixture(autouse=True, scope="session")
def _seed_everything() -> None:
    """
    Seed the global RNGs once per session. Synthetic generators take their own
    seed, so this only matters for tests that draw from the global state.
    """
    seed = int(os.environ.get("PYTEST_SEED", "1234"))
    os.environ["PYTHONHASHSEED"] = str(seed)
    random.seed(seed)
    np.random.seed(seed)


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Repository root (where pyproject.toml lives)."""
    return Path(__file__).resolve().parents[1]
