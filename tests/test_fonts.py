"""Tests for caption font lookup."""

from __future__ import annotations

from pathlib import Path

import pytest

from clipcraft.config import settings
from clipcraft.errors import StagingError
from clipcraft.utils import fonts
from clipcraft.utils.fonts import font_family, resolve_font_path


def test_configured_font_wins(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """CLIPCRAFT_FONT_PATH is used as-is when it exists, and rejected when it does not."""
    font = tmp_path / "Brand.ttf"
    font.write_bytes(b"ttf")
    monkeypatch.setattr(settings, "font_path", font)

    assert resolve_font_path() == font

    monkeypatch.setattr(settings, "font_path", tmp_path / "missing.ttf")
    with pytest.raises(StagingError):
        resolve_font_path()


def test_first_installed_candidate_is_used(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    installed = tmp_path / "LiberationSans-Bold.ttf"
    installed.write_bytes(b"ttf")
    monkeypatch.setattr(settings, "font_path", None)
    monkeypatch.setattr(fonts, "FONT_CANDIDATES", [str(tmp_path / "absent.ttf"), str(installed)])

    assert resolve_font_path() == installed

    monkeypatch.setattr(fonts, "FONT_CANDIDATES", [])
    with pytest.raises(StagingError):
        resolve_font_path()


def test_font_family_comes_from_the_font_file(monkeypatch: pytest.MonkeyPatch) -> None:
    """The family name is read from the file, whatever the file is called."""
    opened: list[str] = []

    class _Font:
        def getname(self) -> tuple[str, str]:
            return ("DejaVu Sans", "Bold")

    def fake_truetype(path: str, size: int) -> _Font:
        opened.append(path)
        return _Font()

    monkeypatch.setattr(fonts.ImageFont, "truetype", fake_truetype)

    assert font_family(Path("/fonts/font.ttf")) == "DejaVu Sans"
    assert opened == ["/fonts/font.ttf"]


def test_unreadable_font_has_no_family(tmp_path: Path) -> None:
    """A file that is not a font yields None so captions fall back to the template font."""
    broken = tmp_path / "broken.ttf"
    broken.write_bytes(b"not a font")

    assert font_family(broken) is None
    assert font_family(tmp_path / "missing.ttf") is None
