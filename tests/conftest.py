"""Shared fixtures for docfolio tests."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Iterable

import pytest

from docfolio.models import SourceDocument
from docfolio.store import DocumentFolderStore
from docfolio.utils import word_count


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch):
    """Keep a developer's .env and DOCFOLIO_* variables out of the tests."""
    monkeypatch.setattr("docfolio.config.load_dotenv", lambda: None)
    for name in (
        "DOCFOLIO_VAULT_PATH",
        "DOCFOLIO_SIMILARITY_THRESHOLD",
        "DOCFOLIO_MIN_CONTENT_LENGTH",
        "DOCFOLIO_SEARCH_LIMIT",
        "DOCFOLIO_ENHANCE",
        "LLM_PROVIDER",
        "ANTHROPIC_API_KEY",
        "OPENAI_API_KEY",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def vault(tmp_path: Path) -> Path:
    root = tmp_path / "vault"
    root.mkdir()
    return root


@pytest.fixture
def store(vault: Path) -> DocumentFolderStore:
    return DocumentFolderStore(vault)


def make_folder(
    root: Path,
    category: str,
    name: str,
    content: str,
    main_name: str | None = None,
    images: Iterable[str] = (),
) -> Path:
    """Write a document folder by hand, optionally with a non-canonical main file."""
    folder = root / category / name
    folder.mkdir(parents=True)
    (folder / (main_name or f"{name}.md")).write_text(content, encoding="utf-8")
    if images:
        (folder / "images").mkdir()
        for image in images:
            (folder / "images" / image).write_bytes(f"{name}:{image}".encode())
    return folder


def make_source(name: str, content: str) -> SourceDocument:
    return SourceDocument(
        folder_path=Path("/vault/Notes") / name,
        folder_name=name,
        main_file=Path("/vault/Notes") / name / f"{name}.md",
        content=content,
        word_count=word_count(content),
        size=len(content),
        created=datetime(2024, 1, 2, 9, 0),
        modified=datetime(2024, 1, 3, 9, 0),
    )


def snapshot(folder: Path) -> dict[str, bytes]:
    """Relative path -> bytes of every file below ``folder``."""
    return {
        str(path.relative_to(folder)): path.read_bytes()
        for path in sorted(folder.rglob("*"))
        if path.is_file()
    }
