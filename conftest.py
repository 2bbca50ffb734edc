"""Root conftest: loads .env.test before relay_service.config is imported."""
from __future__ import annotations

import os
from pathlib import Path

_env_test = Path(__file__).resolve().parent / ".env.test"
if _env_test.exists():
    for raw_line in _env_test.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, _, value = line.partition("=")
        # values already present in the environment win
        os.environ.setdefault(key.strip(), value.strip().strip("\"'"))
