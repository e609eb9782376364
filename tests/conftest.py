from __future__ import annotations

from collections.abc import Generator
from pathlib import Path

import pytest

from clipcraft.config import settings
from clipcraft.services.workspace_service import WorkspaceService


@pytest.fixture(autouse=True)
def _isolated_storage(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Points every data directory at the test's temp dir and forgets runs afterwards."""
    monkeypatch.setattr(settings, "data_dir", tmp_path / "data")
    monkeypatch.setattr(settings, "uploads_dir", tmp_path / "data" / "uploads")
    monkeypatch.setattr(settings, "work_dir", tmp_path / "data" / "work")
    monkeypatch.setattr(settings, "gemini_api_key", None)
    yield
    WorkspaceService._runs.clear()
