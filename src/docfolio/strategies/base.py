"""Abstract base class for merge strategies."""

import re
from abc import ABC, abstractmethod
from datetime import date
from typing import Optional

from ..models import SourceDocument
from ..utils import extract_title

FENCED_CODE_RE = re.compile(r"```.*?```", re.DOTALL)


class MergeStrategy(ABC):
    """Base class for all merge strategies.

    Subclasses must define name and merge. Every strategy starts with the
    same header and ends with the same Document Metadata block.
    """

    def __init__(self, today: Optional[date] = None):
        self._today = today or date.today()

    @property
    @abstractmethod
    def name(self) -> str:
        """Identifier for this strategy."""

    @abstractmethod
    def merge(self, sources: list[SourceDocument], topic: str) -> str:
        """Merge the (frontmatter-free) source texts into one markdown body."""

    @staticmethod
    def _title(source: SourceDocument) -> str:
        return extract_title(source.content) or source.folder_name

    def _header(self, sources: list[SourceDocument], topic: str) -> str:
        source_list = ", ".join(source.folder_name for source in sources)
        return (
            f"# {topic} - Consolidated Document\n\n"
            f"*Created: {self._today.isoformat()}*  \n"
            f"*Strategy: {self.name}*  \n"
            f"*Sources: {len(sources)} documents*\n\n"
            f"**Source Documents:** {source_list}\n\n"
        )

    def _metadata_section(
        self, sources: list[SourceDocument], extra: Optional[list[str]] = None
    ) -> str:
        total_words = sum(source.word_count for source in sources)
        lines = [
            "",
            "## Document Metadata",
            "",
            f"- **Total Sources:** {len(sources)}",
            f"- **Total Word Count:** {total_words}",
            f"- **Consolidation Date:** {self._today.isoformat()}",
        ]
        lines.extend(extra or [])
        lines.extend(["", "### Source Details", ""])
        for i, source in enumerate(sources, 1):
            lines.append(f"{i}. **{source.folder_name}**")
            lines.append(f"   - Words: {source.word_count}")
            if source.size:
                lines.append(f"   - Size: {source.size / 1024:.1f} KB")
            lines.append(f"   - Modified: {source.modified.date().isoformat()}")
            lines.append("")
        return "\n".join(lines) + "\n"
