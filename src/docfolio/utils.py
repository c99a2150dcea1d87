"""Utility functions for docfolio."""

import re
from typing import Iterator, Optional

HEADING_RE = re.compile(r"^(#+)\s+(.+)$", re.MULTILINE)
FENCE_RE = re.compile(r"^\s*```")
FRONTMATTER_RE = re.compile(r"^---\s*\n.*?\n---\s*(?:\n|$)", re.DOTALL)

STOP_WORDS = frozenset({
    "the", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with", "by",
    "from", "up", "about", "into", "through", "during", "before", "after", "above",
    "below", "between", "among", "this", "that", "these", "those", "is", "are", "was",
    "were", "be", "been", "being", "have", "has", "had", "do", "does", "did", "will",
    "would", "could", "should", "may", "might", "must", "can", "shall",
})


def slugify(text: str, max_length: int = 80) -> str:
    """Convert text to a filesystem-safe slug."""
    text = text.lower().strip()
    text = re.sub(r"[^\w\s-]", "", text)
    text = re.sub(r"[\s_]+", "-", text)
    text = re.sub(r"-+", "-", text)
    text = text.strip("-")
    if len(text) > max_length:
        text = text[:max_length].rstrip("-")
    return text or "untitled"


def sanitize_folder_name(name: str, max_length: int = 100) -> str:
    """Turn a display name into a document folder name.

    Unlike ``slugify`` an unusable name gives an empty string, so callers can
    reject it instead of silently creating "untitled".
    """
    name = name.lower().strip()
    name = re.sub(r'[<>:"/\\|?*]', "", name)
    name = re.sub(r"[^\w\s-]", "", name)
    name = re.sub(r"\s+", "-", name)
    name = re.sub(r"-+", "-", name)
    name = name.strip("-.")
    if len(name) > max_length:
        name = name[:max_length].rstrip("-")
    return name


def word_count(text: str) -> int:
    return len(text.split())


def estimate_tokens(text: str) -> int:
    """Rough token estimate (~4 chars per token for English)."""
    return len(text) // 4


def strip_frontmatter(text: str) -> str:
    """Drop a leading YAML frontmatter block, if any."""
    return FRONTMATTER_RE.sub("", text, count=1)


def extract_title(content: str) -> Optional[str]:
    """Return the text of the first level-1 heading."""
    if not content:
        return None
    match = re.search(r"^#\s+(.+)$", content, re.MULTILINE)
    return match.group(1).strip() if match else None


def remove_title(content: str) -> str:
    """Remove the first level-1 heading line."""
    if not content:
        return ""
    return re.sub(r"^#\s+.+$", "", content, count=1, flags=re.MULTILINE).strip()


def title_from_filename(filename: str) -> str:
    """``my-notes_v2`` -> ``My Notes V2``."""
    words = re.sub(r"[-_]+", " ", filename).split()
    return " ".join(word[:1].upper() + word[1:] for word in words)


def anchor(text: str) -> str:
    """Markdown heading anchor used in generated tables of contents."""
    text = re.sub(r"[^a-z0-9\s-]", "", text.lower())
    text = re.sub(r"\s+", "-", text.strip())
    return re.sub(r"-+", "-", text) or "untitled"


def iter_sections(content: str) -> Iterator[tuple[int, str, str]]:
    """Split markdown into ``(level, heading, body)`` tuples.

    Lines inside code fences never count as headings. Text before the first
    heading is yielded with level 0 and an empty heading.
    """
    level, heading, body = 0, "", []
    in_fence = False
    for line in content.split("\n"):
        if FENCE_RE.match(line):
            in_fence = not in_fence
        elif not in_fence:
            match = re.match(r"^(#+)\s+(.+)$", line)
            if match:
                if heading or "".join(body).strip():
                    yield level, heading, "\n".join(body).strip()
                level, heading, body = len(match.group(1)), match.group(2).strip(), []
                continue
        body.append(line)
    if heading or "".join(body).strip():
        yield level, heading, "\n".join(body).strip()
