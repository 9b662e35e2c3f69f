"""Root pytest configuration.

Loads a test ``.env`` when one exists and makes sure no test sees
settings cached by another one.

Test Structure:
    tests/
    ├── unit/              # Fast, isolated tests mirroring the package
    │   ├── domain/
    │   ├── application/
    │   ├── infrastructure/
    │   └── presentation/
    ├── integration/       # Review journeys over the in-memory backend
    └── shared/            # Shared fixtures and factories
"""

from pathlib import Path

import pytest
from dotenv import load_dotenv

from budgetbuddy_config import clear_settings_cache

PROJECT_ROOT = Path(__file__).resolve().parents[1]

CONFIG_DIR = PROJECT_ROOT / "config"
if (CONFIG_DIR / ".env.test").exists():
    load_dotenv(CONFIG_DIR / ".env.test")


@pytest.fixture(autouse=True)
def _fresh_settings():
    clear_settings_cache()
    yield
    clear_settings_cache()
