"""Document folder store.

A document folder is a directory holding one main document file (named
after the folder) and, conventionally, an ``images`` subfolder. The store is
rooted at an explicit vault directory and never looks anywhere else.
"""

import logging
import shutil
from datetime import datetime
from itertools import islice
from pathlib import Path
from typing import Iterator, Optional, Sequence, Union

from .exceptions import ConfigError, NotFoundError, StoreError, ValidationError
from .models import DocumentFolder
from .utils import sanitize_folder_name

LOGGER = logging.getLogger(__name__)

MAIN_FILE_NAMES = ("main", "document", "index")
DOCUMENT_EXTENSIONS = (".md", ".txt")
IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".bmp", ".svg", ".webp")
IMAGES_DIRNAME = "images"
DEFAULT_EXTENSION = ".md"

PathLike = Union[str, Path]


def resolve_main_file(
    folder: Path,
    main_file_names: Sequence[str] = MAIN_FILE_NAMES,
    extensions: Sequence[str] = DOCUMENT_EXTENSIONS,
) -> Optional[Path]:
    """Find the main document file of ``folder`` without touching anything.

    Resolution order:
        1. ``{folder name}{ext}`` for a recognized extension
        2. one of the canonical names (``main``, ``document``, ``index``)
        3. among recognized document files, the one whose stem matches the
           folder name (case-insensitive), else the alphabetically first

    Returns None when the folder does not exist or holds no document file.
    """
    if not folder.is_dir():
        return None

    try:
        files = sorted(
            child for child in folder.iterdir()
            if child.is_file() and not child.name.startswith(".")
        )
    except OSError as e:
        raise StoreError(
            f"Failed to list folder: {e}", operation="resolve_main_file", path=folder
        ) from e

    by_name = {child.name: child for child in files}

    for ext in extensions:
        candidate = by_name.get(f"{folder.name}{ext}")
        if candidate is not None:
            return candidate

    for stem in main_file_names:
        for ext in extensions:
            candidate = by_name.get(f"{stem}{ext}")
            if candidate is not None:
                return candidate

    documents = [child for child in files if child.suffix.lower() in extensions]
    if not documents:
        return None
    folder_key = folder.name.lower()
    documents.sort(key=lambda child: (child.stem.lower() != folder_key, child.name))
    return documents[0]


class DocumentFolderStore:
    """Create, move, delete, read and discover document folders under a root."""

    def __init__(
        self,
        root: PathLike,
        images_dirname: str = IMAGES_DIRNAME,
        main_file_names: Sequence[str] = MAIN_FILE_NAMES,
        document_extensions: Sequence[str] = DOCUMENT_EXTENSIONS,
    ) -> None:
        self.root = Path(root).expanduser().resolve()
        if not self.root.is_dir():
            raise ConfigError("Vault directory does not exist", path=self.root)
        self.images_dirname = images_dirname
        self.main_file_names = tuple(main_file_names)
        self.document_extensions = tuple(ext.lower() for ext in document_extensions)

    def resolve_path(self, path: PathLike) -> Path:
        """Relative paths are taken relative to the store root."""
        path = Path(path).expanduser()
        return path if path.is_absolute() else self.root / path

    def _within_root(self, path: Path, operation: str) -> Path:
        """Reject paths that do not resolve strictly below the root."""
        if self.root not in path.resolve().parents:
            raise ValidationError(
                "Path is outside the vault", operation=operation, path=path, root=self.root
            )
        return path

    def relative_path(self, path: PathLike) -> str:
        full = self.resolve_path(path)
        try:
            return str(full.relative_to(self.root))
        except ValueError:
            return str(full)

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    def find_main_file(self, folder: PathLike) -> Optional[Path]:
        """Side-effect free main file lookup. See ``resolve_main_file``."""
        return resolve_main_file(
            self.resolve_path(folder), self.main_file_names, self.document_extensions
        )

    def is_document_folder(self, folder: PathLike) -> bool:
        return self.find_main_file(folder) is not None

    def normalize(self, folder: PathLike) -> Optional[Path]:
        """Rename the main file so its stem matches the folder name.

        Idempotent: an already normalized folder is left alone and the same
        path is returned. When the expected name is taken by something else
        the current file is kept.
        """
        folder = self.resolve_path(folder)
        current = self.find_main_file(folder)
        if current is None:
            return None

        expected = folder / f"{folder.name}{current.suffix}"
        if current == expected:
            return current
        if expected.exists():
            LOGGER.warning(
                "Expected main file %s already exists, keeping %s", expected.name, current.name
            )
            return current

        try:
            current.rename(expected)
        except OSError as e:
            raise StoreError(
                f"Failed to rename main file: {e}",
                operation="normalize",
                path=current,
                target=expected,
            ) from e
        LOGGER.info("Renamed %s to %s in %s", current.name, expected.name, folder)
        return expected

    def get_main_document_file(self, folder: PathLike) -> Optional[Path]:
        """Discover the main file, normalizing its name on the way.

        Callers must expect the returned name to differ from what was on
        disk before the call.
        """
        return self.normalize(folder)

    def images_dir(self, folder: PathLike) -> Path:
        return self.resolve_path(folder) / self.images_dirname

    def folder_path_for(self, name: str, category: str) -> Path:
        """Where ``create_document_folder(name, category)`` would put the folder."""
        sanitized = sanitize_folder_name(name)
        if not sanitized:
            raise ValidationError("Document name is empty after sanitizing", name=name)
        return self._category_path(category) / sanitized

    def _category_path(self, category: str) -> Path:
        category = (category or "").strip()
        parts = Path(category).parts
        if not category or Path(category).is_absolute() or ".." in parts:
            raise ValidationError("Invalid category", category=category)
        return self.root / category

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_document_folder(self, name: str, category: str, initial_content: str = "") -> Path:
        """Create ``{root}/{category}/{sanitized name}`` with its main file.

        Steps are not rolled back when a later one fails.

        Raises:
            ValidationError: If the name is unusable or the folder exists.
            StoreError: If a filesystem call fails.
        """
        folder = self.folder_path_for(name, category)
        if folder.exists():
            raise ValidationError(
                "Document folder already exists",
                operation="create_document_folder",
                path=folder,
            )

        main_file = folder / f"{folder.name}{DEFAULT_EXTENSION}"
        try:
            folder.parent.mkdir(parents=True, exist_ok=True)
            folder.mkdir()
            main_file.write_text(initial_content or f"# {name}\n\n", encoding="utf-8")
            (folder / self.images_dirname).mkdir(exist_ok=True)
        except OSError as e:
            raise StoreError(
                f"Failed to create document folder: {e}",
                operation="create_document_folder",
                path=folder,
            ) from e

        LOGGER.info("Created document folder %s", folder)
        return folder

    def move_document_folder(self, source: PathLike, target: PathLike) -> Path:
        """Move a document folder with a single rename.

        The main file is renamed afterwards to match the new folder name.
        """
        source = self._within_root(self.resolve_path(source), "move_document_folder")
        target = self._within_root(self.resolve_path(target), "move_document_folder")

        if not source.exists():
            raise NotFoundError(
                "Source document folder does not exist",
                operation="move_document_folder",
                path=source,
            )
        if not self.is_document_folder(source):
            raise ValidationError(
                "Source is not a document folder",
                operation="move_document_folder",
                path=source,
            )
        if target.exists():
            raise ValidationError(
                "Target already exists",
                operation="move_document_folder",
                path=target,
            )

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            source.rename(target)
        except OSError as e:
            raise StoreError(
                f"Failed to move document folder: {e}",
                operation="move_document_folder",
                path=source,
                target=target,
            ) from e

        self.normalize(target)
        LOGGER.info("Moved document folder %s to %s", source, target)
        return target

    def delete_document_folder(self, folder: PathLike) -> None:
        folder = self._within_root(self.resolve_path(folder), "delete_document_folder")
        if not folder.exists():
            raise NotFoundError(
                "Document folder does not exist",
                operation="delete_document_folder",
                path=folder,
            )
        if not self.is_document_folder(folder):
            raise ValidationError(
                "Path is not a document folder",
                operation="delete_document_folder",
                path=folder,
            )
        try:
            shutil.rmtree(folder)
        except OSError as e:
            raise StoreError(
                f"Failed to delete document folder: {e}",
                operation="delete_document_folder",
                path=folder,
            ) from e
        LOGGER.info("Deleted document folder %s", folder)

    def read_content(self, folder: PathLike) -> str:
        folder = self.resolve_path(folder)
        main_file = self.find_main_file(folder)
        if main_file is None:
            raise NotFoundError(
                "No main document file found", operation="read_content", path=folder
            )
        try:
            return main_file.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise StoreError(
                f"Failed to read main file: {e}", operation="read_content", path=main_file
            ) from e

    def update_content(self, folder: PathLike, content: str) -> Path:
        folder = self.resolve_path(folder)
        main_file = self.find_main_file(folder)
        if main_file is None:
            raise NotFoundError(
                "No main document file found", operation="update_content", path=folder
            )
        try:
            main_file.write_text(content, encoding="utf-8")
        except OSError as e:
            raise StoreError(
                f"Failed to write main file: {e}", operation="update_content", path=main_file
            ) from e
        LOGGER.debug("Updated %s (%d chars)", main_file, len(content))
        return main_file

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def iter_document_folders(
        self,
        search_path: Optional[PathLike] = None,
        recursive: bool = True,
        normalize: bool = True,
    ) -> Iterator[Path]:
        """Depth-first walk yielding document folders.

        A document folder is yielded and never descended into. The store
        root is always treated as a plain container. With ``normalize`` the
        main file of every yielded folder is renamed to match it.
        """
        start = self.resolve_path(search_path) if search_path is not None else self.root
        if not start.is_dir():
            return
        if start != self.root and self.is_document_folder(start):
            if normalize:
                self.normalize(start)
            yield start
            return
        yield from self._walk(start, recursive, normalize)

    def _walk(self, directory: Path, recursive: bool, normalize: bool) -> Iterator[Path]:
        try:
            children = sorted(
                child for child in directory.iterdir()
                if child.is_dir() and not child.name.startswith(".")
            )
        except OSError as e:
            LOGGER.warning("Cannot list %s: %s", directory, e)
            return

        for child in children:
            if self.is_document_folder(child):
                if normalize:
                    self.normalize(child)
                yield child
            elif recursive:
                yield from self._walk(child, recursive, normalize)

    def find_document_folders(
        self,
        search_path: Optional[PathLike] = None,
        recursive: bool = True,
        limit: Optional[int] = None,
        normalize: bool = True,
    ) -> list[Path]:
        folders = self.iter_document_folders(search_path, recursive, normalize)
        if limit is not None:
            return list(islice(folders, limit))
        return list(folders)

    def list_document_folders(self, category: str) -> list[Path]:
        """Document folders directly inside a category directory."""
        return self.find_document_folders(self._category_path(category), recursive=False)

    def list_categories(self) -> list[str]:
        return sorted(
            child.name for child in self.root.iterdir()
            if child.is_dir()
            and not child.name.startswith(".")
            and not self.is_document_folder(child)
        )

    def get_metadata(self, folder: PathLike) -> DocumentFolder:
        """Describe a document folder: sizes, timestamps and image count."""
        folder = self.resolve_path(folder)
        if not folder.is_dir():
            raise NotFoundError(
                "Document folder does not exist", operation="get_metadata", path=folder
            )

        main_file = self.find_main_file(folder)
        images_dir = self.images_dir(folder)
        try:
            folder_stat = folder.stat()
            size = sum(item.stat().st_size for item in folder.rglob("*") if item.is_file())
            modified = main_file.stat().st_mtime if main_file else folder_stat.st_mtime
            image_count = 0
            if images_dir.is_dir():
                image_count = sum(
                    1 for item in images_dir.iterdir()
                    if item.is_file() and item.suffix.lower() in IMAGE_EXTENSIONS
                )
        except OSError as e:
            raise StoreError(
                f"Failed to stat document folder: {e}", operation="get_metadata", path=folder
            ) from e

        created = getattr(folder_stat, "st_birthtime", folder_stat.st_ctime)
        return DocumentFolder(
            path=folder,
            name=folder.name,
            category=folder.parent.name,
            main_file=main_file,
            images_dir=images_dir,
            size=size,
            created=datetime.fromtimestamp(created),
            modified=datetime.fromtimestamp(modified),
            image_count=image_count,
        )
