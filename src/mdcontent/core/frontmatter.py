"""Source discovery and YAML frontmatter / excerpt splitting"""

import re
from pathlib import Path
from typing import Any

import yaml

from mdcontent.core.models import FrontmatterResult


FRONTMATTER_RE = re.compile(r'\A---[ \t]*\r?\n(.*?)^---[ \t]*(?:\r?\n|\Z)', re.DOTALL | re.MULTILINE)
MD_EXTENSION = '.md'


def _parse_yaml(block: str) -> dict[str, Any]:
    """Parse a frontmatter block; anything but a mapping is an error."""
    try:
        fm = yaml.safe_load(block)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML frontmatter: {e}") from e
    if fm is None:
        return {}
    if not isinstance(fm, dict):
        raise ValueError(f"Invalid YAML frontmatter: expected a mapping, got {type(fm).__name__}")
    return fm


def _excerpt(body: str, separator: str) -> str | None:
    """Text before the first line that is exactly `separator`, or None."""
    lines = body.splitlines(keepends=True)
    for i, line in enumerate(lines):
        if line.strip() == separator:
            return ''.join(lines[:i]).strip() or None
    return None


def split_frontmatter(text: str, excerpt_separator: str = '---') -> FrontmatterResult:
    """Return (frontmatter, body, excerpt); body is the full text when there is no header."""
    m = FRONTMATTER_RE.match(text)
    if not m:
        return FrontmatterResult(frontmatter={}, body=text, excerpt=_excerpt(text, excerpt_separator))
    body = text[m.end():]
    return FrontmatterResult(
        frontmatter=_parse_yaml(m.group(1)),
        body=body,
        excerpt=_excerpt(body, excerpt_separator),
    )


def discover_files(path: Path) -> list[Path]:
    """Return sorted .md files under path, or [path] if a single markdown file."""
    if path.is_file():
        return [path] if path.suffix == MD_EXTENSION else []
    return sorted(p for p in path.rglob(f'*{MD_EXTENSION}') if p.is_file())
