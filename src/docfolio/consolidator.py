"""Merge several document folders into one consolidated document folder.

Sources are only ever read. The consolidated folder is created next to the
other folders of its category, and every write goes through a writer so a
dry run reports the same plan without touching the disk.
"""

import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, Sequence, Union

from .analyzer import extract_topics
from .enhancer import ContentEnhancer
from .exceptions import ContentProcessingError, DocfolioError, StoreError, ValidationError
from .formatter import format_consolidated_document
from .models import ConsolidationResult, SourceDocument
from .store import DocumentFolderStore
from .strategies import canonical_strategy_name, get_strategy
from .utils import strip_frontmatter, word_count
from .writer import FolderWriter, get_writer

LOGGER = logging.getLogger(__name__)

DEFAULT_CATEGORY = "Consolidated"

MARKDOWN_IMAGE_RE = re.compile(r'(!\[[^\]]*\]\()([^)\s]+)((?:\s+"[^"]*")?\))')
HTML_IMAGE_RE = re.compile(r'(<img\b[^>]*?\bsrc=["\'])([^"\']+)(["\'])', re.IGNORECASE)

PathLike = Union[str, Path]
Categorizer = Callable[[list[str]], Optional[str]]


def update_image_references(content: str, image_map: dict[str, str]) -> str:
    """Rewrite markdown and ``<img>`` image paths found in ``image_map``."""

    def swap(match: re.Match) -> str:
        path = match.group(2)
        return match.group(1) + image_map.get(path, path) + match.group(3)

    return HTML_IMAGE_RE.sub(swap, MARKDOWN_IMAGE_RE.sub(swap, content))


class ConsolidationEngine:
    """Consolidate document folders with a merge strategy.

    Args:
        store: Store the folders live in.
        dry_run: Plan the consolidation without writing anything.
        enhancer: Optional LLM smoothing step, skipped in dry runs.
        categorize: Optional classifier mapping topics to a category name.
    """

    def __init__(
        self,
        store: DocumentFolderStore,
        dry_run: bool = False,
        enhancer: Optional[ContentEnhancer] = None,
        categorize: Optional[Categorizer] = None,
    ):
        self.store = store
        self.dry_run = dry_run
        self.enhancer = enhancer
        self.categorize = categorize

    def consolidate_content(
        self,
        folders: Sequence[PathLike],
        topic: str,
        strategy: str = "simple",
        category: Optional[str] = None,
    ) -> ConsolidationResult:
        """Merge ``folders`` into ``{category}/{topic}-consolidated``.

        Raises:
            ValidationError: No folders, a blank topic or an unknown strategy.
            ContentProcessingError: None of the folders could be read.
        """
        if not folders:
            raise ValidationError(
                "No document folders provided for consolidation",
                operation="consolidate_content",
                topic=topic,
            )
        if not topic or not topic.strip():
            raise ValidationError(
                "Invalid or missing topic for consolidation",
                operation="consolidate_content",
                folder_count=len(folders),
            )
        topic = topic.strip()
        strategy = canonical_strategy_name(strategy)

        LOGGER.info(
            "Consolidating %d folders on '%s' with the %s strategy%s",
            len(folders), topic, strategy, " (dry run)" if self.dry_run else "",
        )

        sources, failed = self._read_sources(folders)
        if not sources:
            raise ContentProcessingError(
                "No content could be extracted from document folders",
                operation="consolidate_content",
                topic=topic,
                folder_count=len(folders),
            )
        warnings = [f"Skipped {item['folder']}: {item['error']}" for item in failed]

        created = datetime.now()
        merged = get_strategy(strategy, today=created.date()).merge(sources, topic)

        category = self._choose_category(category, sources, warnings)
        target = self._target_folder(topic, category)
        writer = get_writer(self.dry_run)
        writer.mkdir(target)
        images_dir = writer.mkdir(self.store.images_dir(target))

        image_map, images_merged = self._merge_images(sources, images_dir, writer, warnings)
        content = update_image_references(merged, image_map)

        enhanced = False
        if self.enhancer is not None and self.dry_run:
            LOGGER.info("DRY RUN: skipping enhancement of '%s'", topic)
        elif self.enhancer is not None:
            content, enhanced = self.enhancer.enhance(content, topic)
            if not enhanced:
                warnings.append("Enhancement failed or was skipped; merged content kept")

        document = format_consolidated_document(content, topic, strategy, len(sources), created)
        main_file = writer.write_text(target / f"{target.name}.md", document)

        LOGGER.info(
            "Consolidated %d sources into %s (%d images)", len(sources), target, images_merged
        )
        return ConsolidationResult(
            success=True,
            consolidated_folder=target,
            main_file=main_file,
            topic=topic,
            strategy=strategy,
            category=category,
            source_documents=[source.folder_name for source in sources],
            merged_content=document,
            images_merged=images_merged,
            dry_run=self.dry_run,
            enhanced=enhanced,
            failed_sources=failed,
            warnings=warnings,
            planned_operations=list(writer.operations),
        )

    def _read_sources(self, folders: Sequence[PathLike]) -> tuple[list[SourceDocument], list[dict]]:
        sources, failed = [], []
        for folder in folders:
            folder_path = self.store.resolve_path(folder)
            try:
                main_file = self.store.find_main_file(folder_path)
                if main_file is None:
                    raise ValidationError("No main document found in folder", path=folder_path)
                content = strip_frontmatter(self.store.read_content(folder_path)).strip()
                stat = main_file.stat()
            except (DocfolioError, OSError) as e:
                LOGGER.warning("Failed to extract content from %s: %s", folder_path, e)
                failed.append({"folder": str(folder_path), "error": str(e)})
                continue

            sources.append(SourceDocument(
                folder_path=folder_path,
                folder_name=folder_path.name,
                main_file=main_file,
                content=content,
                word_count=word_count(content),
                size=stat.st_size,
                created=datetime.fromtimestamp(getattr(stat, "st_birthtime", stat.st_ctime)),
                modified=datetime.fromtimestamp(stat.st_mtime),
            ))
        LOGGER.info("Read %d of %d source folders", len(sources), len(folders))
        return sources, failed

    def _choose_category(
        self, category: Optional[str], sources: list[SourceDocument], warnings: list[str]
    ) -> str:
        if category:
            return category
        if self.categorize is None:
            return DEFAULT_CATEGORY
        topics = extract_topics("\n\n".join(source.content for source in sources))
        try:
            chosen = self.categorize(topics)
        except Exception as e:
            LOGGER.warning("Categorizer failed, using %s: %s", DEFAULT_CATEGORY, e)
            warnings.append(f"Categorizer failed: {e}")
            return DEFAULT_CATEGORY
        return chosen or DEFAULT_CATEGORY

    def _target_folder(self, topic: str, category: str) -> Path:
        """First free ``{topic}-consolidated`` name, numbered when taken."""
        base = f"{topic}-consolidated"
        target = self.store.folder_path_for(base, category)
        suffix = 2
        while target.exists():
            target = self.store.folder_path_for(f"{base}-{suffix}", category)
            suffix += 1
        return target

    def _merge_images(
        self,
        sources: list[SourceDocument],
        images_dir: Path,
        writer: FolderWriter,
        warnings: list[str],
    ) -> tuple[dict[str, str], int]:
        """Copy every source image into ``images_dir``.

        Same-named images overwrite each other; the last source wins.
        """
        image_map: dict[str, str] = {}
        copied: dict[str, str] = {}
        for source in sources:
            source_images = self.store.images_dir(source.folder_path)
            if not source_images.is_dir():
                continue
            try:
                files = sorted(
                    item for item in source_images.iterdir()
                    if item.is_file() and not item.name.startswith(".")
                )
            except OSError as e:
                LOGGER.warning("Failed to list images of %s: %s", source.folder_name, e)
                warnings.append(f"Images of {source.folder_name} not merged: {e}")
                continue

            for image in files:
                if image.name in copied:
                    LOGGER.warning(
                        "Image %s from %s overwrites the copy from %s",
                        image.name, source.folder_name, copied[image.name],
                    )
                    warnings.append(
                        f"Image {image.name} from {source.folder_name} replaced "
                        f"the one from {copied[image.name]}"
                    )
                try:
                    writer.copy_file(image, images_dir / image.name)
                except StoreError as e:
                    LOGGER.warning("Failed to copy %s: %s", image, e)
                    warnings.append(f"Image {image.name} not copied: {e.message}")
                    continue
                copied[image.name] = source.folder_name
                new_path = f"images/{image.name}"
                image_map[f"images/{image.name}"] = new_path
                image_map[f"./images/{image.name}"] = new_path

        LOGGER.info("Merged %d images into %s", len(copied), images_dir)
        return image_map, len(copied)
