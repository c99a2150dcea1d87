"""Full-text search over document folders.

Every search is a fresh linear scan of the main files; nothing is indexed
and nothing on disk is changed.
"""

import logging
import re
from pathlib import Path
from typing import Optional

from .exceptions import DocfolioError, ValidationError
from .models import SearchMatch, SearchResponse, SearchResult
from .store import DocumentFolderStore

LOGGER = logging.getLogger(__name__)

MATCH_POINTS = 10
HEADING_POINTS = 50
EARLY_LINE_POINTS = 20
EARLY_LINES = 5
QUERY_WORD_POINTS = 15
LONG_DOCUMENT_CHARS = 10_000
LONG_DOCUMENT_FACTOR = 0.8


def _is_heading(line: str) -> bool:
    return line.strip().startswith("#")


def _heading_text(line: str) -> str:
    return re.sub(r"^#+\s*", "", line.strip())


def score_document(content: str, query: str, matches: list[SearchMatch]) -> int:
    """Relevance heuristic: matches, heading and early-line bonuses, query words."""
    lines = content.split("\n")
    score = 0.0
    for match in matches:
        score += MATCH_POINTS
        line_index = match.line_number - 1
        if _is_heading(lines[line_index]):
            score += HEADING_POINTS
        if line_index < EARLY_LINES:
            score += EARLY_LINE_POINTS

    words = set(content.lower().split())
    score += QUERY_WORD_POINTS * sum(1 for word in query.lower().split() if word in words)

    if len(content) > LONG_DOCUMENT_CHARS:
        score *= LONG_DOCUMENT_FACTOR
    return round(score)


class SearchEngine:
    """Search the main files of the document folders in a store."""

    def __init__(
        self,
        store: DocumentFolderStore,
        excerpt_radius: int = 50,
        preview_radius: int = 200,
        highlight_marker: str = "**",
    ):
        self.store = store
        self.excerpt_radius = excerpt_radius
        self.preview_radius = preview_radius
        self.highlight_marker = highlight_marker

    def search_documents(
        self,
        query: str,
        category: Optional[str] = None,
        limit: int = 10,
        use_regex: bool = False,
        case_sensitive: bool = False,
    ) -> SearchResponse:
        """Find document folders whose main file matches ``query``.

        Traversal stops once ``limit`` matching folders were found; those are
        then ranked by score, match count, modification time and path.

        Raises:
            ValidationError: If the query is blank or ``limit`` is below 1.
        """
        if not query or not query.strip():
            raise ValidationError(
                "Search query is required and must be a non-empty string",
                operation="search_documents",
            )
        if limit < 1:
            raise ValidationError(
                "Search limit must be at least 1", operation="search_documents", limit=limit
            )

        response = SearchResponse(
            query=query,
            category=category,
            use_regex=use_regex,
            case_sensitive=case_sensitive,
        )
        pattern = self._compile(query, use_regex, case_sensitive, response.warnings)

        search_path = self.store.root
        if category:
            search_path = self.store.resolve_path(category).resolve()
            inside_root = search_path == self.store.root or self.store.root in search_path.parents
            if not inside_root or not search_path.is_dir():
                LOGGER.warning("Search category does not exist: %s", category)
                response.warnings.append(f"Category '{category}' does not exist")
                return response
        response.search_path = search_path

        LOGGER.info("Searching %s for %r (limit %d)", search_path, query, limit)
        for folder in self.store.iter_document_folders(search_path, normalize=False):
            response.folders_searched += 1
            try:
                result = self._search_folder(folder, query, pattern)
            except (DocfolioError, OSError) as e:
                LOGGER.error("Error searching in folder %s: %s", folder, e)
                response.processing_errors.append({"folder": str(folder), "error": str(e)})
                continue
            if result is None:
                continue
            response.results.append(result)
            if len(response.results) >= limit:
                break

        response.results.sort(key=lambda result: (
            -result.relevance_score,
            -result.total_matches,
            -result.document.modified.timestamp(),
            result.relative_path,
        ))
        response.total_results = len(response.results)
        LOGGER.info(
            "Search for %r found %d results in %d folders",
            query, response.total_results, response.folders_searched,
        )
        return response

    @staticmethod
    def _compile(query: str, use_regex: bool, case_sensitive: bool, warnings: list[str]) -> re.Pattern:
        flags = 0 if case_sensitive else re.IGNORECASE
        if use_regex:
            try:
                return re.compile(query, flags)
            except re.error as e:
                LOGGER.warning("Invalid regular expression %r, searching literally: %s", query, e)
                warnings.append(f"Invalid regular expression ({e}); searched as literal text")
        return re.compile(re.escape(query), flags)

    def _search_folder(self, folder: Path, query: str, pattern: re.Pattern) -> Optional[SearchResult]:
        content = self.store.read_content(folder)
        matches = self.find_matches(content, pattern)
        if not matches:
            return None

        preview = self.create_preview(content, matches[0])
        return SearchResult(
            document=self.store.get_metadata(folder),
            relative_path=self.store.relative_path(folder),
            relevance_score=score_document(content, query, matches),
            matches=matches,
            preview=preview,
            highlighted_preview=self.highlight(preview, pattern),
        )

    def find_matches(self, content: str, pattern: re.Pattern) -> list[SearchMatch]:
        """Every non-empty match, line by line, with its excerpt and section."""
        matches = []
        section = "Document"
        offset = 0
        for line_number, line in enumerate(content.split("\n"), 1):
            if _is_heading(line):
                section = _heading_text(line) or section
            for found in pattern.finditer(line):
                start, end = found.span()
                if start == end:
                    continue
                excerpt_start = max(0, start - self.excerpt_radius)
                matches.append(SearchMatch(
                    line_number=line_number,
                    excerpt=line[excerpt_start:end + self.excerpt_radius],
                    section=section,
                    match_text=found.group(0),
                    index=offset + start,
                    length=end - start,
                ))
            offset += len(line) + 1
        return matches

    def create_preview(self, content: str, first: SearchMatch) -> str:
        start = max(0, first.index - self.preview_radius)
        end = min(len(content), first.index + first.length + self.preview_radius)
        preview = content[start:end]
        if start > 0:
            preview = "..." + preview
        if end < len(content):
            preview += "..."
        return preview

    def highlight(self, text: str, pattern: re.Pattern) -> str:
        marker = self.highlight_marker

        def wrap(match: re.Match) -> str:
            if not match.group(0):
                return ""
            return f"{marker}{match.group(0)}{marker}"

        return pattern.sub(wrap, text)
