from __future__ import annotations

import pytest

from lapse import config


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    monkeypatch.setenv("LAPSE_LOG_DIR", str(tmp_path / "logs"))
    config.reset_settings()
    yield
    config.reset_settings()


def make_note(path, header_lines, body="Body text"):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(["---", *header_lines, "---", "", body, ""]), encoding="utf-8")
    return path
