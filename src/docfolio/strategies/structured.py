"""Structured consolidation: content pooled by theme across sources."""

import re

from ..models import SourceDocument
from ..utils import iter_sections
from .base import FENCED_CODE_RE, MergeStrategy

LINK_RE = re.compile(r"(?<!!)\[([^\]]+)\]\(([^)]+)\)")
IMAGE_RE = re.compile(r"!\[([^\]]*)\]\(([^)]+)\)")


def format_theme_title(theme: str) -> str:
    return theme[:1].upper() + re.sub(r"[-_]", " ", theme[1:])


class StructuredConsolidation(MergeStrategy):
    """Headings become themes; code blocks and links get their own sections.

    Text found under the same heading (case-insensitive) in several sources
    is grouped under one theme. Text before the first heading of a source
    goes to the "General" theme.
    """

    @property
    def name(self) -> str:
        return "structured"

    def merge(self, sources: list[SourceDocument], topic: str) -> str:
        themes: dict[str, list[tuple[str, str]]] = {}
        code_blocks: list[tuple[str, str]] = []
        links: list[tuple[str, str]] = []
        seen_links: set[str] = set()
        image_count = 0

        for source in sources:
            image_count += len(IMAGE_RE.findall(source.content))
            for match in LINK_RE.finditer(source.content):
                if match.group(0) not in seen_links:
                    seen_links.add(match.group(0))
                    links.append((match.group(0), source.folder_name))

            for _, heading, body in iter_sections(source.content):
                text = self._pull_code_blocks(body, source.folder_name, code_blocks)
                if text:
                    themes.setdefault(heading.lower() or "general", []).append(
                        (text, source.folder_name)
                    )

        parts = [self._header(sources, topic), "\n## Overview\n\n"]
        parts.append(
            f"This document consolidates information about {topic} from "
            f"{len(sources)} sources. The content has been organized "
            "thematically for better understanding."
        )
        if code_blocks or image_count:
            parts.append(
                f" It includes {len(code_blocks)} code examples and {image_count} images."
            )
        parts.append("\n\n")

        if themes:
            parts.append("## Main Content\n\n")
            for theme, entries in themes.items():
                parts.append(f"### {format_theme_title(theme)}\n\n")
                for text, source_name in entries:
                    parts.append(f"{text}\n\n*Source: {source_name}*\n\n")
                parts.append("---\n\n")

        if code_blocks:
            parts.append("## Code Examples\n\n")
            for i, (block, source_name) in enumerate(code_blocks, 1):
                parts.append(f"### Example {i}\n\n{block}\n\n*Source: {source_name}*\n\n")

        if links:
            parts.append("## References and Links\n\n")
            for link, source_name in links:
                parts.append(f"- {link} *({source_name})*\n")
            parts.append("\n")

        parts.append(self._metadata_section(sources))
        return "".join(parts)

    @staticmethod
    def _pull_code_blocks(body: str, source_name: str, code_blocks: list[tuple[str, str]]) -> str:
        """Move fenced code out of the body, leaving a pointer to its example."""

        def replace(match: re.Match) -> str:
            code_blocks.append((match.group(0), source_name))
            return f"*See Example {len(code_blocks)} below.*"

        return FENCED_CODE_RE.sub(replace, body).strip()
