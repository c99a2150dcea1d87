"""Simple merge: every source in order, behind a table of contents."""

from ..models import SourceDocument
from ..utils import anchor, remove_title
from .base import MergeStrategy


class SimpleMerge(MergeStrategy):
    @property
    def name(self) -> str:
        return "simple"

    def merge(self, sources: list[SourceDocument], topic: str) -> str:
        titles = [self._title(source) for source in sources]

        parts = [self._header(sources, topic), "\n## Table of Contents\n\n"]
        for i, title in enumerate(titles, 1):
            parts.append(f"{i}. [{title}](#{anchor(title)})\n")
        parts.append("\n---\n\n")

        for i, (source, title) in enumerate(zip(sources, titles)):
            parts.append(f"## {title}\n\n")
            parts.append(f"*Source: {source.folder_name}*\n\n")
            parts.append(f"{remove_title(source.content)}\n\n")
            if i < len(sources) - 1:
                parts.append("---\n\n")

        parts.append(self._metadata_section(sources))
        return "".join(parts)
