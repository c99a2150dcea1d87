"""Tests for the consolidation engine."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from conftest import make_folder, snapshot
from docfolio.consolidator import ConsolidationEngine, update_image_references
from docfolio.exceptions import ContentProcessingError, ValidationError
from docfolio.store import DocumentFolderStore

PART_ONE = "# Part 1\n\nIntro text.\n\n![cluster](./images/cluster.png)\n"
PART_TWO = (
    "---\ntitle: Part 2\n---\n# Part 2\n\nMore text.\n\n"
    '![nodes](images/nodes.png "Nodes")\n<img src="./images/nodes.png" width="200">\n'
)


@pytest.fixture
def sources(vault: Path) -> list[Path]:
    return [
        make_folder(vault, "Notes", "part-one", PART_ONE, images=["cluster.png"]),
        make_folder(vault, "Notes", "part-two", PART_TWO, main_name="main.md", images=["nodes.png"]),
    ]


class TestUpdateImageReferences:
    def test_rewrites_known_paths_only(self) -> None:
        image_map = {"images/a.png": "images/a.png", "./images/a.png": "images/a.png"}
        content = (
            "![a](./images/a.png) ![b](./images/b.png) "
            '![t](./images/a.png "Title") <IMG alt="x" SRC=\'./images/a.png\'>'
        )
        assert update_image_references(content, image_map) == (
            "![a](images/a.png) ![b](./images/b.png) "
            '![t](images/a.png "Title") <IMG alt="x" SRC=\'images/a.png\'>'
        )


class TestConsolidateContent:
    def test_creates_consolidated_folder(
        self, store: DocumentFolderStore, vault: Path, sources: list[Path]
    ) -> None:
        result = ConsolidationEngine(store).consolidate_content(sources, "Kubernetes")

        target = vault / "Consolidated" / "kubernetes-consolidated"
        assert result.success
        assert result.consolidated_folder == target
        assert result.main_file == target / "kubernetes-consolidated.md"
        assert result.category == "Consolidated"
        assert result.source_documents == ["part-one", "part-two"]
        assert result.images_merged == 2
        assert (target / "images" / "cluster.png").read_bytes() == b"part-one:cluster.png"
        assert (target / "images" / "nodes.png").exists()

        written = result.main_file.read_text()
        assert written == result.merged_content
        assert written.startswith('---\ntitle: "Kubernetes - Consolidated Document"\n')
        assert "type: consolidated" in written
        assert "source_count: 2" in written
        assert "title: Part 2" not in written
        assert store.is_document_folder(target)

    def test_sources_unchanged(
        self, store: DocumentFolderStore, vault: Path, sources: list[Path]
    ) -> None:
        """Should leave every source folder byte-for-byte intact."""
        before = snapshot(vault / "Notes")
        ConsolidationEngine(store).consolidate_content(sources, "Kubernetes", "comprehensive")
        assert snapshot(vault / "Notes") == before
        assert (sources[1] / "main.md").exists()

    def test_image_references_rewritten(self, store: DocumentFolderStore, sources: list[Path]) -> None:
        result = ConsolidationEngine(store).consolidate_content(sources, "Kubernetes", "structured")
        content = result.merged_content
        assert "./images/" not in content
        assert "![cluster](images/cluster.png)" in content
        assert '![nodes](images/nodes.png "Nodes")' in content
        assert '<img src="images/nodes.png"' in content

    def test_dry_run_writes_nothing(
        self, store: DocumentFolderStore, vault: Path, sources: list[Path]
    ) -> None:
        before = snapshot(vault)
        result = ConsolidationEngine(store, dry_run=True).consolidate_content(sources, "Kubernetes")
        assert snapshot(vault) == before
        assert not (vault / "Consolidated").exists()
        assert result.dry_run
        assert result.main_file == vault / "Consolidated" / "kubernetes-consolidated" / "kubernetes-consolidated.md"
        assert any(op.startswith("mkdir") for op in result.planned_operations)
        assert sum(op.startswith("copy") for op in result.planned_operations) == 2
        assert result.planned_operations[-1].startswith(f"write {result.main_file}")
        assert "![cluster](images/cluster.png)" in result.merged_content

    def test_taken_target_gets_numeric_suffix(self, store: DocumentFolderStore, sources: list[Path]) -> None:
        engine = ConsolidationEngine(store)
        first = engine.consolidate_content(sources, "Kubernetes")
        second = engine.consolidate_content(sources, "Kubernetes")
        assert first.consolidated_folder.name == "kubernetes-consolidated"
        assert second.consolidated_folder.name == "kubernetes-consolidated-2"
        assert second.main_file.name == "kubernetes-consolidated-2.md"

    def test_explicit_category_and_alias(self, store: DocumentFolderStore, vault: Path, sources: list[Path]) -> None:
        result = ConsolidationEngine(store).consolidate_content(
            sources, "Kubernetes", "simple_merge", category="Guides"
        )
        assert result.strategy == "simple"
        assert result.consolidated_folder.parent == vault / "Guides"

    def test_categorizer(self, store: DocumentFolderStore, vault: Path, sources: list[Path]) -> None:
        categorize = MagicMock(return_value="Infrastructure")
        result = ConsolidationEngine(store, categorize=categorize).consolidate_content(sources, "Kubernetes")
        assert result.category == "Infrastructure"
        topics = categorize.call_args[0][0]
        assert "part" in topics or "text" in topics

    def test_categorizer_without_answer(self, store: DocumentFolderStore, sources: list[Path]) -> None:
        engine = ConsolidationEngine(store, categorize=lambda topics: None)
        assert engine.consolidate_content(sources, "Kubernetes").category == "Consolidated"

    def test_same_named_images_last_write_wins(self, store: DocumentFolderStore, vault: Path) -> None:
        a = make_folder(vault, "Notes", "a", "# A\n\n![x](images/shot.png)", images=["shot.png"])
        b = make_folder(vault, "Notes", "b", "# B\n\n![x](images/shot.png)", images=["shot.png"])
        result = ConsolidationEngine(store).consolidate_content([a, b], "Shots")
        assert result.images_merged == 1
        assert (result.consolidated_folder / "images" / "shot.png").read_bytes() == b"b:shot.png"
        assert any("shot.png" in warning for warning in result.warnings)

    def test_unreadable_sources_reported(self, store: DocumentFolderStore, vault: Path, sources: list[Path]) -> None:
        (vault / "Notes" / "empty").mkdir()
        result = ConsolidationEngine(store).consolidate_content(
            [*sources, vault / "Notes" / "empty", "Notes/missing"], "Kubernetes"
        )
        assert result.source_documents == ["part-one", "part-two"]
        assert [Path(item["folder"]).name for item in result.failed_sources] == ["empty", "missing"]
        assert len(result.warnings) == 2


class TestConsolidateValidation:
    def test_no_folders(self, store: DocumentFolderStore) -> None:
        with pytest.raises(ValidationError):
            ConsolidationEngine(store).consolidate_content([], "Topic")

    def test_blank_topic(self, store: DocumentFolderStore, sources: list[Path]) -> None:
        with pytest.raises(ValidationError):
            ConsolidationEngine(store).consolidate_content(sources, "   ")

    def test_unknown_strategy(self, store: DocumentFolderStore, sources: list[Path]) -> None:
        with pytest.raises(ValidationError):
            ConsolidationEngine(store).consolidate_content(sources, "Topic", "fancy")

    def test_nothing_readable(self, store: DocumentFolderStore, vault: Path) -> None:
        (vault / "Notes" / "empty").mkdir(parents=True)
        with pytest.raises(ContentProcessingError):
            ConsolidationEngine(store).consolidate_content(["Notes/empty"], "Topic")
        assert not (vault / "Consolidated").exists()


class TestEnhancement:
    def test_enhanced_content_written(self, store: DocumentFolderStore, sources: list[Path]) -> None:
        enhancer = MagicMock()
        enhancer.enhance.return_value = ("# Smooth\n\nBetter text.", True)
        result = ConsolidationEngine(store, enhancer=enhancer).consolidate_content(sources, "Kubernetes")
        assert result.enhanced
        assert "Better text." in result.main_file.read_text()
        merged, topic = enhancer.enhance.call_args[0]
        assert topic == "Kubernetes"
        assert "## Part 1" in merged

    def test_failed_enhancement_keeps_merge(self, store: DocumentFolderStore, sources: list[Path]) -> None:
        enhancer = MagicMock()
        enhancer.enhance.side_effect = lambda content, topic: (content, False)
        result = ConsolidationEngine(store, enhancer=enhancer).consolidate_content(sources, "Kubernetes")
        assert result.success
        assert not result.enhanced
        assert "## Part 1" in result.main_file.read_text()
        assert any("Enhancement" in warning for warning in result.warnings)

    def test_skipped_in_dry_run(self, store: DocumentFolderStore, sources: list[Path]) -> None:
        enhancer = MagicMock()
        ConsolidationEngine(store, dry_run=True, enhancer=enhancer).consolidate_content(sources, "Kubernetes")
        enhancer.enhance.assert_not_called()
