"""YAML frontmatter and markdown formatting for consolidated documents."""

from datetime import datetime
from typing import Optional


def format_frontmatter(
    title: str,
    topic: str,
    strategy: str,
    source_count: int,
    created: Optional[datetime] = None,
) -> str:
    """Generate YAML frontmatter for a consolidated document."""
    created = created or datetime.now()

    lines = [
        "---",
        f"title: \"{_escape_yaml(title)}\"",
        f"topic: \"{_escape_yaml(topic)}\"",
        "type: consolidated",
        f"strategy: {strategy}",
        f"source_count: {source_count}",
        f"created: {created.strftime('%Y-%m-%d')}",
        "---",
    ]
    return "\n".join(lines)


def format_consolidated_document(
    content: str,
    topic: str,
    strategy: str,
    source_count: int,
    created: Optional[datetime] = None,
) -> str:
    """Prefix merged content with its frontmatter block."""
    frontmatter = format_frontmatter(
        f"{topic} - Consolidated Document", topic, strategy, source_count, created
    )
    return f"{frontmatter}\n\n{content.strip()}\n"


def _escape_yaml(text: str) -> str:
    """Escape special characters for YAML string values."""
    text = text.replace("\\", "\\\\")
    text = text.replace('"', '\\"')
    text = text.replace("\n", " ")
    return text
