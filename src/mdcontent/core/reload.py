"""Hot reload: map changed source files to provider invalidations"""

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from pathlib import Path
from typing import Any, Optional

import structlog
from watchfiles import DefaultFilter, awatch

from mdcontent.core.engine import ContentEngine
from mdcontent.core.frontmatter import MD_EXTENSION
from mdcontent.core.metrics import path_slug


log = structlog.get_logger()

Rebuild = Callable[[list[Path]], Awaitable[Any]]


class MarkdownFilter(DefaultFilter):
    """Accept only markdown sources."""

    def __call__(self, change: object, path: str) -> bool:
        return super().__call__(change, path) and path.endswith(MD_EXTENSION)


class HotReloadInvalidator:
    """Forwards source changes to `provider.invalidate`; keeps no cache of its own.

    With no provider only the rebuild half of `watch` runs, for processes that
    compile content but never serve it.
    """

    def __init__(self, provider: Optional[ContentEngine], content_root: Path | str):
        self.provider = provider
        self.content_root = Path(content_root).resolve()

    def _within_root(self, path: Path) -> bool:
        try:
            path.resolve().relative_to(self.content_root)
        except ValueError:
            return False
        return True

    def _invalidate(self, slug: Optional[str]) -> None:
        if self.provider is not None:
            self.provider.invalidate(slug)

    def notify(self, paths: Iterable[Path | str]) -> list[str]:
        """Invalidate the key of every changed markdown file; returns invalidated slugs.

        A change outside the content root cannot be mapped to a key, so the
        whole cache is dropped instead.
        """
        slugs = []
        for raw in paths:
            path = Path(raw)
            if path.suffix != MD_EXTENSION:
                continue
            if not self._within_root(path):
                log.info("reload_unmapped_change", path=str(path))
                self._invalidate(None)
                return slugs
            slug = path_slug(path, self.content_root)
            self._invalidate(slug)
            slugs.append(slug)
        return slugs

    async def watch(self, rebuild: Rebuild | None = None, stop_event: asyncio.Event | None = None) -> None:
        """Watch the content root until stop_event is set.

        Each batch is rebuilt first (when a rebuild callback is given) so the
        next load after invalidation sees fresh output.
        """
        log.info("reload_watch_started", content_root=str(self.content_root))
        async for changes in awatch(self.content_root, watch_filter=MarkdownFilter(), stop_event=stop_event):
            paths = sorted({Path(p) for _change, p in changes})
            if rebuild is not None:
                await rebuild(paths)
            slugs = self.notify(paths)
            log.info("reload_applied", changed=len(paths), invalidated=slugs)
        log.info("reload_watch_stopped", content_root=str(self.content_root))
