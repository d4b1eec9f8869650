"""Root conftest: seeds the environment from .env.test before portal_service.config is imported."""
from __future__ import annotations

import os
from pathlib import Path

ENV_FILE = Path(__file__).resolve().parent / ".env.test"

if ENV_FILE.exists():
    for raw in ENV_FILE.read_text().splitlines():
        entry = raw.strip()
        if entry and not entry.startswith("#"):
            name, _, value = entry.partition("=")
            os.environ.setdefault(name.strip(), value.strip())
