import sys
from pathlib import Path

import pytest

# Ensure the backend package root is on sys.path for direct pytest runs
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from settings import Settings, settings  # noqa: E402


@pytest.fixture(autouse=True)
def default_settings(monkeypatch):
    """Pin settings to their defaults so a local backend/.env cannot leak into tests."""
    for name in list(vars(settings)):
        monkeypatch.delenv(f"STAMPIT_{name}", raising=False)
    defaults = Settings()
    for name, value in vars(defaults).items():
        monkeypatch.setattr(settings, name, value)
    return settings
