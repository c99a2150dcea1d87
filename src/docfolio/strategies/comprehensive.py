"""Comprehensive merge: themes across sources with sentence-level deduplication."""

import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Optional

from ..models import SourceDocument
from ..utils import FENCE_RE, STOP_WORDS, anchor, iter_sections
from .base import MergeStrategy

SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+")
# Lines that open a new block instead of continuing a paragraph
BLOCK_START_RE = re.compile(r"^\s*(?:[-*+]\s|\d+[.)]\s|#|\||>)")
TERM_RE = re.compile(r"\b\w{4,}\b")
MIN_SENTENCE_LENGTH = 20
GENERAL_THEME = "General Information"


def normalize_sentence(sentence: str) -> str:
    text = re.sub(r"\s+", " ", sentence.lower()).strip()
    return text.rstrip(".!?").rstrip()


def key_topics(sources: list[SourceDocument], per_source: int = 10) -> list[str]:
    """Frequent non-stop-words, ranked by how many sources use them, then frequency."""
    counters = []
    for source in sources:
        words = [w for w in TERM_RE.findall(source.content.lower()) if w not in STOP_WORDS]
        counters.append(Counter(words))

    candidates: dict[str, None] = {}
    for counter in counters:
        for word, _ in counter.most_common(per_source):
            candidates[word] = None

    total = sum(counters, Counter())
    return sorted(
        candidates,
        key=lambda word: (sum(1 for c in counters if word in c), total[word]),
        reverse=True,
    )


@dataclass
class _Entry:
    text: str = ""
    sources: list[str] = field(default_factory=list)


class ComprehensiveMerge(MergeStrategy):
    """Merge every source's sections by heading, dropping repeated sentences.

    A sentence (longer than 20 chars after normalizing) that already
    appeared in another source is kept only at its first occurrence, and the
    later source is credited on the entry that kept it.
    """

    @property
    def name(self) -> str:
        return "comprehensive"

    def merge(self, sources: list[SourceDocument], topic: str) -> str:
        owners: dict[str, tuple[int, _Entry]] = {}
        themes: dict[str, list[_Entry]] = {}
        duplicates = 0

        for index, source in enumerate(sources):
            for _, heading, body in iter_sections(source.content):
                entry = _Entry(sources=[source.folder_name])
                entry.text, removed = self._dedupe(body, index, source.folder_name, entry, owners)
                duplicates += removed
                if not entry.text:
                    continue
                entries = themes.setdefault(heading or GENERAL_THEME, [])
                same = next((e for e in entries if e.text == entry.text), None)
                if same is None:
                    entries.append(entry)
                elif source.folder_name not in same.sources:
                    same.sources.append(source.folder_name)

        topics = key_topics(sources)

        parts = [self._header(sources, topic), "\n## Executive Summary\n\n"]
        parts.append(
            f"This comprehensive document about {topic} synthesizes information "
            f"from {len(sources)} sources. Key topics covered include: "
            f"{', '.join(topics[:5])}."
        )
        if duplicates:
            parts.append(" Duplicate content has been identified and consolidated.")
        parts.append("\n\n## Table of Contents\n\n")
        for i, title in enumerate(themes, 1):
            parts.append(f"{i}. [{title}](#{anchor(title)})\n")
        parts.append("\n---\n\n")

        for title, entries in themes.items():
            parts.append(f"## {title}\n\n")
            for entry in entries:
                label = "Source" if len(entry.sources) == 1 else "Sources"
                parts.append(f"{entry.text}\n\n*{label}: {', '.join(entry.sources)}*\n\n")
            parts.append("---\n\n")

        parts.append("## Appendices\n\n### Appendix A: Source Files\n\n")
        for i, source in enumerate(sources, 1):
            parts.append(
                f"{i}. **{source.folder_name}**\n"
                f"   - Word count: {source.word_count}\n"
                f"   - Last modified: {source.modified.date().isoformat()}\n"
            )
        parts.append("\n")

        parts.append(self._metadata_section(sources, [
            f"- **Key Topics:** {', '.join(topics[:10])}",
            f"- **Duplicate Content Removed:** {duplicates} instances",
        ]))
        return "".join(parts)

    @staticmethod
    def _dedupe(
        body: str,
        index: int,
        source_name: str,
        entry: _Entry,
        owners: dict[str, tuple[int, _Entry]],
    ) -> tuple[str, int]:
        """Drop sentences first seen in another source. Code fences are untouched.

        Wrapped lines of one paragraph (or list item) are joined before
        splitting, so a sentence matches however its source wraps it.
        """
        lines: list[str] = []
        paragraph: list[str] = []
        removed = 0

        def flush() -> None:
            nonlocal removed
            if not paragraph:
                return
            first = paragraph[0]
            indent = first[: len(first) - len(first.lstrip())]
            text = " ".join(line.strip() for line in paragraph)
            paragraph.clear()
            kept = []
            for sentence in SENTENCE_SPLIT_RE.split(text):
                key = normalize_sentence(sentence)
                owner: Optional[tuple[int, _Entry]] = owners.get(key)
                if len(key) <= MIN_SENTENCE_LENGTH:
                    kept.append(sentence)
                elif owner is None:
                    owners[key] = (index, entry)
                    kept.append(sentence)
                elif owner[0] == index:
                    kept.append(sentence)
                else:
                    removed += 1
                    if source_name not in owner[1].sources:
                        owner[1].sources.append(source_name)
            if kept:
                lines.append(indent + " ".join(kept))

        in_fence = False
        for line in body.split("\n"):
            if FENCE_RE.match(line):
                flush()
                in_fence = not in_fence
                lines.append(line)
            elif in_fence:
                lines.append(line)
            elif not line.strip():
                flush()
                lines.append(line)
            elif BLOCK_START_RE.match(line):
                flush()
                paragraph.append(line)
            else:
                paragraph.append(line)
        flush()

        text = re.sub(r"\n{3,}", "\n\n", "\n".join(lines)).strip()
        return text, removed
