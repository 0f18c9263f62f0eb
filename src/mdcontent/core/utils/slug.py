"""Heading id generation"""

import re


_HEADING_STRIP_RE = re.compile(r'[^\w\- ]', re.UNICODE)


class Slugger:
    """GitHub-style heading slugs, unique within one document.

    Punctuation is dropped and each space becomes a hyphen (no collapsing),
    so ids match what GitHub renders for the same heading text. A repeated
    slug gets `-1`, `-2`, ... appended in order of appearance.
    """

    def __init__(self):
        self._seen: dict[str, int] = {}

    def slug(self, text: str) -> str:
        base = _HEADING_STRIP_RE.sub('', text.strip().lower()).replace(' ', '-')
        result = base
        while result in self._seen:
            self._seen[base] += 1
            result = f"{base}-{self._seen[base]}"
        self._seen[result] = 0
        return result

    def reserve(self, existing: str) -> None:
        """Record an id that is already present in the document."""
        self._seen.setdefault(existing, 0)

    def reset(self) -> None:
        self._seen.clear()
