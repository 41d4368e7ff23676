"""Shared helpers for writing catalog fixtures to disk."""

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest


def make_template(template_id: str = "nextcloud", **overrides) -> dict:
    data = {
        "id": template_id,
        "name": overrides.pop("name", template_id.capitalize()),
        "description": f"The {template_id} template",
        "icon": f"{template_id}.png",
        "category": "productivity",
        "author": "Stumpfworks",
        "version": "1.0.0",
        "compose": "services:\n  app:\n    image: example/app:latest\n",
        "variables": {"PORT": "8080"},
        "requirements": {"min_memory_mb": 512, "ports": [8080]},
        "created_at": "2024-01-01T00:00:00Z",
        "updated_at": "2024-02-01T12:30:00Z",
        "tags": ["cloud"],
    }
    data.update(overrides)
    return data


def make_app(app_id: str = "backup-tool", **overrides) -> dict:
    data = {
        "id": app_id,
        "name": overrides.pop("name", app_id.replace("-", " ").title()),
        "description": f"The {app_id} app",
        "icon": f"{app_id}.svg",
        "category": "storage",
        "author": "Stumpfworks",
        "version": "0.3.1",
        "dependencies": ["rsync"],
        "packages": ["rsync"],
        "services": ["backup.service"],
        "install_script": "install.sh",
        "uninstall_script": "uninstall.sh",
        "created_at": "2024-03-01T00:00:00Z",
        "updated_at": "2024-03-02T00:00:00Z",
    }
    data.update(overrides)
    return data


def write_record(root: Path, relpath: str, data) -> Path:
    """Write ``data`` as JSON (or raw text if a str) under ``root``."""
    path = Path(root) / relpath
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(data, str):
        path.write_text(data)
    else:
        path.write_text(json.dumps(data))
    return path


class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
