"""Content analysis: fingerprints, similarity and duplicate detection."""

import hashlib
import logging
import re
from collections import Counter
from itertools import combinations
from pathlib import Path
from typing import Iterable, Optional, Sequence, Union

from .exceptions import ContentProcessingError, NotFoundError, StoreError
from .models import (
    ConsolidationCandidate,
    ContentAnalysis,
    DocumentMetadata,
    DuplicateGroup,
    DuplicateReport,
    Structure,
)
from .store import (
    DOCUMENT_EXTENSIONS,
    IMAGE_EXTENSIONS,
    IMAGES_DIRNAME,
    MAIN_FILE_NAMES,
    DocumentFolderStore,
    resolve_main_file,
)
from .utils import HEADING_RE, strip_frontmatter, title_from_filename, word_count

LOGGER = logging.getLogger(__name__)

NEAR_IDENTICAL = 0.95
GROUP_SIMILARITY_MIN = 0.6
COMPREHENSIVE_WORD_COUNT = 2000
TOP_TERMS = 10

TERM_RE = re.compile(r"\b\w{4,}\b")
TITLE_PATTERNS = (
    re.compile(r"^#\s+(.+)$", re.MULTILINE),
    re.compile(r"^title:\s*(.+)$", re.MULTILINE | re.IGNORECASE),
    re.compile(r"^(.+)\n=+$", re.MULTILINE),
    re.compile(r"^(.+)\n-+$", re.MULTILINE),
)
DATE_RE = re.compile(r"(\d{4}-\d{2}-\d{2}|\d{2}/\d{2}/\d{4}|\d{2}-\d{2}-\d{4})")
AUTHOR_PATTERNS = (
    re.compile(r"^\s*author:\s*(.+)$", re.MULTILINE | re.IGNORECASE),
    re.compile(r"^\s*(?:written\s+)?by\s+(.+)$", re.MULTILINE | re.IGNORECASE),
)
TABLE_RE = re.compile(r"\|.*\|")
LINK_RE = re.compile(r"\[.+\]\(.+\)")
IMAGE_RE = re.compile(r"!\[.*\]\(.+\)")
HTML_RE = re.compile(r"</?[a-z][^>]*>", re.IGNORECASE)
BULLET_RE = re.compile(r"^[-*+]\s+")
LEADING_HEADING_RE = re.compile(r"^#+\s+")

PathLike = Union[str, Path]


def content_hash(text: str) -> str:
    """SHA-256 of the text lowercased, whitespace collapsed, punctuation removed."""
    normalized = re.sub(r"\s+", " ", text.lower())
    normalized = re.sub(r"[^\w\s]", "", normalized).strip()
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


def jaccard(a: Iterable[str], b: Iterable[str]) -> float:
    set_a, set_b = set(a), set(b)
    union = set_a | set_b
    if not union:
        return 0.0
    return len(set_a & set_b) / len(union)


def extract_topics(text: str) -> list[str]:
    """Heading words longer than 3 chars, then the most frequent body terms."""
    topics: dict[str, None] = {}
    for match in HEADING_RE.finditer(text):
        for word in match.group(2).lower().split():
            if len(word) > 3:
                topics[word] = None

    counts = Counter(TERM_RE.findall(text.lower()))
    for word, _ in counts.most_common(TOP_TERMS):
        topics[word] = None
    return list(topics)


def detect_format(text: str) -> str:
    body = text.lstrip()
    if LEADING_HEADING_RE.match(body):
        return "markdown"
    if HTML_RE.search(body):
        return "html"
    return "text"


def detect_content_type(text: str) -> str:
    """First match wins: technical, article, notes, data, document."""
    body = text.lstrip()
    if "```" in body:
        return "technical"
    if LEADING_HEADING_RE.match(body):
        return "article"
    if BULLET_RE.match(body):
        return "notes"
    if TABLE_RE.search(body):
        return "data"
    return "document"


def analyze_structure(text: str) -> Structure:
    matches = list(HEADING_RE.finditer(text))
    return Structure(
        headings=[match.group(2).strip() for match in matches],
        heading_levels=[len(match.group(1)) for match in matches],
        format=detect_format(text),
        has_code_blocks="```" in text,
        has_links=bool(LINK_RE.search(text)),
        has_images=bool(IMAGE_RE.search(text)),
        has_tables=bool(TABLE_RE.search(text)),
    )


def extract_title(text: str) -> Optional[str]:
    """Title from ``# Title``, a ``title:`` field or a setext heading."""
    for pattern in TITLE_PATTERNS:
        match = pattern.search(text)
        if match and match.group(1).strip():
            return match.group(1).strip().strip("\"'")
    return None


def extract_metadata(text: str, path: Path) -> DocumentMetadata:
    date = DATE_RE.search(text)
    author = None
    for pattern in AUTHOR_PATTERNS:
        match = pattern.search(text)
        if match:
            author = match.group(1).strip()
            break
    return DocumentMetadata(
        original_filename=path.stem,
        suggested_title=extract_title(text) or title_from_filename(path.stem),
        date_created=date.group(1) if date else None,
        author=author,
        file_extension=path.suffix,
    )


def is_likely_main_file(path: Path, main_file_names: Sequence[str] = MAIN_FILE_NAMES) -> bool:
    """True for canonical names or a stem matching the parent directory."""
    stem = path.stem.lower()
    parent = path.parent.name.lower()
    if stem in main_file_names or stem == "readme":
        return True
    return stem == parent or re.sub(r"[-_]", "", stem) == re.sub(r"[-_]", "", parent)


def count_images(images_dir: Path) -> int:
    try:
        return sum(
            1 for item in images_dir.iterdir()
            if item.is_file() and item.suffix.lower() in IMAGE_EXTENSIONS
        )
    except OSError:
        return 0


class ContentAnalyzer:
    """Fingerprint documents and compare them.

    Args:
        similarity_threshold: Minimum score for a "similar" pair.
        min_content_length: Shorter texts are not analyzed.
        main_file_names, document_extensions, images_dirname: Folder layout,
            matching the ``DocumentFolderStore`` the paths come from.
    """

    def __init__(
        self,
        similarity_threshold: float = 0.8,
        min_content_length: int = 100,
        main_file_names: Sequence[str] = MAIN_FILE_NAMES,
        document_extensions: Sequence[str] = DOCUMENT_EXTENSIONS,
        images_dirname: str = IMAGES_DIRNAME,
    ):
        self.similarity_threshold = similarity_threshold
        self.min_content_length = min_content_length
        self.main_file_names = tuple(main_file_names)
        self.document_extensions = tuple(ext.lower() for ext in document_extensions)
        self.images_dirname = images_dirname

    @classmethod
    def for_store(cls, store: DocumentFolderStore, **kwargs) -> "ContentAnalyzer":
        """An analyzer that finds main files the way ``store`` does."""
        return cls(
            main_file_names=store.main_file_names,
            document_extensions=store.document_extensions,
            images_dirname=store.images_dirname,
            **kwargs,
        )

    def _resolve(self, path: PathLike) -> Path:
        path = Path(path)
        if path.is_dir():
            main_file = resolve_main_file(path, self.main_file_names, self.document_extensions)
            if main_file is None:
                raise NotFoundError("No main document file found", path=path)
            return main_file
        if not path.is_file():
            raise NotFoundError("File does not exist", path=path)
        return path

    def _analyze(self, path: PathLike) -> Optional[ContentAnalysis]:
        """Analyze one file or folder; read failures raise, short texts give None."""
        file_path = self._resolve(path)
        try:
            raw = file_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ContentProcessingError(f"Could not read file: {e}", path=file_path) from e

        if len(raw) < self.min_content_length:
            LOGGER.debug("Skipping %s: %d chars is below the minimum", file_path, len(raw))
            return None

        text = strip_frontmatter(raw)
        analysis = ContentAnalysis(
            file_path=file_path,
            content_hash=content_hash(raw),
            word_count=word_count(raw),
            content_type=detect_content_type(text),
            topics=extract_topics(text),
            structure=analyze_structure(text),
            metadata=extract_metadata(raw, file_path),
        )

        if is_likely_main_file(file_path, self.main_file_names):
            images_dir = file_path.parent / self.images_dirname
            analysis.is_main_document_file = True
            analysis.document_folder_name = file_path.parent.name
            analysis.has_images_folder = images_dir.is_dir()
            if analysis.has_images_folder:
                analysis.image_count = count_images(images_dir)
        return analysis

    def analyze_content(self, path: PathLike) -> Optional[ContentAnalysis]:
        """Analyze a file or a document folder's main file.

        Returns None for texts shorter than ``min_content_length`` and for
        files that cannot be read.
        """
        try:
            return self._analyze(path)
        except (NotFoundError, ContentProcessingError, StoreError) as e:
            LOGGER.warning("Failed to analyze %s: %s", path, e)
            return None

    def _analyze_batch(self, paths: Iterable[PathLike], report: DuplicateReport) -> list[ContentAnalysis]:
        analyses = []
        for path in paths:
            try:
                analysis = self._analyze(path)
            except (NotFoundError, ContentProcessingError, StoreError) as e:
                LOGGER.warning("Failed to analyze %s: %s", path, e)
                report.errors.append(f"{path}: {e.message}")
                continue
            if analysis is None:
                report.skipped.append(Path(path))
            else:
                analyses.append(analysis)
        report.analyzed = len(analyses)
        return analyses

    def calculate_similarity(self, a: ContentAnalysis, b: ContentAnalysis) -> float:
        """Weighted blend of topic, structure and content similarity in [0, 1]."""
        topic_sim = jaccard(a.topics, b.topics)

        structure_sim = 0.7 * jaccard(a.structure.headings, b.structure.headings)
        structure_sim += 0.3 * (a.structure.format == b.structure.format)

        larger = max(a.word_count, b.word_count)
        count_sim = 1.0 if larger == 0 else 1 - abs(a.word_count - b.word_count) / larger
        content_sim = 0.6 * count_sim + 0.4 * (a.content_type == b.content_type)

        return 0.4 * topic_sim + 0.2 * structure_sim + 0.4 * content_sim

    @staticmethod
    def recommend_action(kind: str, similarity: float, folders: bool, images: bool) -> str:
        if kind == "exact":
            if folders:
                return "merge_document_folders_preserve_images" if images else "merge_document_folders"
            return "merge_or_delete"
        if not folders:
            return "merge" if similarity > NEAR_IDENTICAL else "consolidate"
        if similarity <= NEAR_IDENTICAL:
            return "consolidate_document_folders"
        return "merge_document_folders_preserve_images" if images else "merge_document_folders"

    def _group(self, kind: str, similarity: float, files: list[ContentAnalysis]) -> DuplicateGroup:
        folders = any(analysis.is_main_document_file for analysis in files)
        images = any(analysis.image_count > 0 for analysis in files)
        return DuplicateGroup(
            kind=kind,
            similarity=similarity,
            files=files,
            recommended_action=self.recommend_action(kind, similarity, folders, images),
            involves_document_folders=folders,
            involves_images=images,
        )

    def find_duplicates(self, paths: Iterable[PathLike]) -> DuplicateReport:
        """Find exact (same hash) and similar (score >= threshold) documents.

        Every pair is compared once; pairs sharing a hash only appear in
        their exact group.
        """
        report = DuplicateReport()
        analyses = self._analyze_batch(paths, report)

        by_hash: dict[str, list[ContentAnalysis]] = {}
        for analysis in analyses:
            by_hash.setdefault(analysis.content_hash, []).append(analysis)
        for files in by_hash.values():
            if len(files) > 1:
                report.groups.append(self._group("exact", 1.0, files))

        for a, b in combinations(analyses, 2):
            # Same-hash pairs are already reported together in their exact group
            if a.content_hash == b.content_hash:
                continue
            similarity = self.calculate_similarity(a, b)
            if similarity >= self.similarity_threshold:
                report.groups.append(self._group("similar", similarity, [a, b]))

        LOGGER.info(
            "Analyzed %d documents: %d exact groups, %d similar pairs, %d skipped, %d errors",
            report.analyzed,
            len(report.exact_groups),
            len(report.similar_groups),
            len(report.skipped),
            len(report.errors),
        )
        return report

    def group_similarity(self, files: list[ContentAnalysis]) -> float:
        """Mean pairwise similarity, 0 for fewer than two files."""
        pairs = list(combinations(files, 2))
        if not pairs:
            return 0.0
        return sum(self.calculate_similarity(a, b) for a, b in pairs) / len(pairs)

    def find_consolidation_candidates(self, paths: Iterable[PathLike]) -> list[ConsolidationCandidate]:
        """Groups of documents sharing a topic that are similar enough to merge."""
        report = DuplicateReport()
        analyses = self._analyze_batch(paths, report)

        by_topic: dict[str, list[ContentAnalysis]] = {}
        for analysis in analyses:
            for topic in analysis.topics:
                by_topic.setdefault(topic, []).append(analysis)

        candidates = []
        for topic, files in by_topic.items():
            if len(files) < 2:
                continue
            avg_similarity = self.group_similarity(files)
            if avg_similarity < GROUP_SIMILARITY_MIN:
                continue
            candidates.append(ConsolidationCandidate(
                topic=topic,
                files=files,
                avg_similarity=avg_similarity,
                total_word_count=sum(analysis.word_count for analysis in files),
                recommended_title=recommended_title(topic, files),
                strategy=choose_strategy(files),
            ))

        candidates.sort(key=lambda candidate: candidate.avg_similarity, reverse=True)
        return candidates


def common_title_words(titles: list[str]) -> list[str]:
    """Words longer than 3 chars present in every title, in first-title order."""
    if not titles:
        return []
    word_sets = [{word for word in title.lower().split() if len(word) > 3} for title in titles]
    common = set.intersection(*word_sets)
    ordered = dict.fromkeys(word for word in titles[0].lower().split() if word in common)
    return list(ordered)


def recommended_title(topic: str, files: list[ContentAnalysis]) -> str:
    words = common_title_words([analysis.metadata.suggested_title for analysis in files])
    if words:
        return " ".join(words[:3]) + " - Consolidated"
    return f"{topic[:1].upper()}{topic[1:]} - Consolidated"


def choose_strategy(files: list[ContentAnalysis]) -> str:
    avg_words = sum(analysis.word_count for analysis in files) / len(files)
    if avg_words > COMPREHENSIVE_WORD_COUNT:
        return "comprehensive"
    if any(a.structure.has_code_blocks or a.structure.has_images for a in files):
        return "structured"
    return "simple"
