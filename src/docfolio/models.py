"""Data models for docfolio."""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

STRATEGY_NAMES = ("simple", "structured", "comprehensive")


def _jsonable(value: Any) -> Any:
    """Convert paths and datetimes inside ``asdict`` output to plain values."""
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    return value


@dataclass
class DocumentFolder:
    """A directory holding one main document file plus an images folder."""

    path: Path
    name: str
    category: str
    main_file: Optional[Path]
    images_dir: Path
    size: int = 0
    created: datetime = field(default_factory=datetime.now)
    modified: datetime = field(default_factory=datetime.now)
    image_count: int = 0

    def to_dict(self) -> dict:
        return _jsonable(asdict(self))


@dataclass
class Structure:
    """Structural fingerprint of a markdown text."""

    headings: list[str] = field(default_factory=list)
    heading_levels: list[int] = field(default_factory=list)
    format: str = "text"  # markdown, html, text
    has_code_blocks: bool = False
    has_links: bool = False
    has_images: bool = False
    has_tables: bool = False


@dataclass
class DocumentMetadata:
    """Metadata pulled out of a document's text and file name."""

    original_filename: str
    suggested_title: str
    date_created: Optional[str] = None
    author: Optional[str] = None
    file_extension: str = ""


@dataclass
class ContentAnalysis:
    """Per-document analysis, only alive for the duration of one batch call."""

    file_path: Path
    content_hash: str
    word_count: int
    content_type: str  # technical, article, notes, data, document
    topics: list[str]
    structure: Structure
    metadata: DocumentMetadata
    is_main_document_file: bool = False
    document_folder_name: Optional[str] = None
    has_images_folder: bool = False
    image_count: int = 0

    def to_dict(self) -> dict:
        return _jsonable(asdict(self))


@dataclass
class DuplicateGroup:
    """Documents sharing a hash ("exact") or a high similarity ("similar")."""

    kind: str
    similarity: float
    files: list[ContentAnalysis]
    recommended_action: str
    involves_document_folders: bool = False
    involves_images: bool = False

    @property
    def paths(self) -> list[Path]:
        return [analysis.file_path for analysis in self.files]

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "similarity": round(self.similarity, 4),
            "files": [str(path) for path in self.paths],
            "recommended_action": self.recommended_action,
            "involves_document_folders": self.involves_document_folders,
            "involves_images": self.involves_images,
        }


@dataclass
class DuplicateReport:
    """Outcome of a duplicate scan, including what could not be analyzed."""

    groups: list[DuplicateGroup] = field(default_factory=list)
    analyzed: int = 0
    skipped: list[Path] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def exact_groups(self) -> list[DuplicateGroup]:
        return [group for group in self.groups if group.kind == "exact"]

    @property
    def similar_groups(self) -> list[DuplicateGroup]:
        return [group for group in self.groups if group.kind == "similar"]

    def to_dict(self) -> dict:
        return {
            "groups": [group.to_dict() for group in self.groups],
            "analyzed": self.analyzed,
            "skipped": [str(path) for path in self.skipped],
            "errors": list(self.errors),
        }


@dataclass
class ConsolidationCandidate:
    """A set of documents sharing a topic that could be merged."""

    topic: str
    files: list[ContentAnalysis]
    avg_similarity: float
    total_word_count: int
    recommended_title: str
    strategy: str

    @property
    def paths(self) -> list[Path]:
        return [analysis.file_path for analysis in self.files]

    def to_dict(self) -> dict:
        return {
            "topic": self.topic,
            "files": [str(path) for path in self.paths],
            "avg_similarity": round(self.avg_similarity, 4),
            "total_word_count": self.total_word_count,
            "recommended_title": self.recommended_title,
            "strategy": self.strategy,
        }


@dataclass
class SourceDocument:
    """One readable input of a consolidation."""

    folder_path: Path
    folder_name: str
    main_file: Path
    content: str
    word_count: int
    size: int
    created: datetime
    modified: datetime


@dataclass
class ConsolidationResult:
    """What a consolidation produced, or would produce in dry-run mode."""

    success: bool
    consolidated_folder: Path
    main_file: Path
    topic: str
    strategy: str
    category: str
    source_documents: list[str]
    merged_content: str
    images_merged: int = 0
    dry_run: bool = False
    enhanced: bool = False
    failed_sources: list[dict] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    planned_operations: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return _jsonable(asdict(self))


@dataclass
class SearchMatch:
    """A single match of the query inside a main document file."""

    line_number: int
    excerpt: str
    section: str
    match_text: str
    index: int
    length: int


@dataclass
class SearchResult:
    """A matching document folder with its relevance score."""

    document: DocumentFolder
    relative_path: str
    relevance_score: int
    matches: list[SearchMatch]
    preview: str
    highlighted_preview: str

    @property
    def total_matches(self) -> int:
        return len(self.matches)

    def to_dict(self) -> dict:
        data = _jsonable(asdict(self))
        data["total_matches"] = self.total_matches
        return data


@dataclass
class SearchResponse:
    """Structured answer of a search, including non-fatal problems."""

    query: str
    category: Optional[str] = None
    results: list[SearchResult] = field(default_factory=list)
    total_results: int = 0
    folders_searched: int = 0
    search_path: Optional[Path] = None
    use_regex: bool = False
    case_sensitive: bool = False
    warnings: list[str] = field(default_factory=list)
    processing_errors: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        data = _jsonable(asdict(self))
        data["results"] = [result.to_dict() for result in self.results]
        return data
