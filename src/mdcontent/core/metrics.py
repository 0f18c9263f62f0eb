"""Word count, reading time and path-derived slugs"""

import math
from pathlib import Path, PurePath


WORDS_PER_MINUTE = 200


def word_count(body: str) -> int:
    """Number of whitespace-delimited runs in the raw markdown body.

    Counted before HTML conversion: markdown syntax such as `#`, `-` list
    bullets or `[text](url)` counts like any other run, so totals are higher
    than the rendered prose. Reproducible for a given source text.
    """
    return len(body.split())


def reading_time(words: int, words_per_minute: int = WORDS_PER_MINUTE) -> int:
    """Minutes to read `words`; 0 only for an empty body."""
    return math.ceil(words / words_per_minute) if words > 0 else 0


def path_slug(file_path: Path | str, content_root: Path | str | None = None) -> str:
    """Slug from the path relative to content_root, '/'-separated, '.md' removed.

    Files outside the root (or with no root) fall back to the base name.
    """
    path = PurePath(file_path)
    rel = None
    if content_root is not None:
        try:
            rel = Path(file_path).resolve().relative_to(Path(content_root).resolve())
        except ValueError:
            rel = None
    slug = rel.as_posix() if rel is not None else path.name
    return slug[:-len('.md')] if slug.endswith('.md') else slug
