"""Content engine interface and the caching, deduplicating providers behind it"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from functools import partial
from pathlib import Path
from typing import Any, Sequence

import structlog
from pydantic import BaseModel

from mdcontent.core.errors import NotFoundError, UnsupportedOperationError
from mdcontent.core.manifest import ContentManifest
from mdcontent.core.models import ContentArtifact, ContentFilters, RenderOptions
from mdcontent.core.schemas import ValidationResult, validate_content
from mdcontent.core.transform import render_html


log = structlog.get_logger()

DEFAULT_KEY_FORMATS = ("{alias}/{slug}.md", "/content/{slug}.md")


class ContentEngine(ABC):
    """Operations application code may call on a content backend."""

    @abstractmethod
    async def load_content(self, slug: str) -> ContentArtifact:
        raise NotImplementedError

    @abstractmethod
    async def load_collection(self, filters: ContentFilters | None = None) -> list[ContentArtifact]:
        raise NotImplementedError

    @abstractmethod
    async def render_markdown(self, markdown: str, options: RenderOptions | None = None) -> str:
        raise NotImplementedError

    @abstractmethod
    def validate_content(self, content: Any, schema: type[BaseModel]) -> ValidationResult:
        raise NotImplementedError

    @abstractmethod
    def invalidate(self, slug: str | None = None) -> None:
        raise NotImplementedError


class ManifestContentProvider(ContentEngine):
    """Cache + in-flight dedup over a ContentManifest.

    `_cache` and `_inflight` are the only mutable state. Both are touched
    only from the event loop, and an in-flight task is registered before the
    first await, so concurrent callers for one slug share a single load.
    """

    def __init__(
        self,
        manifest: ContentManifest,
        alias: str = "@content",
        key_formats: Sequence[str] = DEFAULT_KEY_FORMATS,
        ):
        self.manifest = manifest
        self.alias = alias.rstrip("/")
        self.key_formats = tuple(key_formats)
        self._cache: dict[str, ContentArtifact] = {}
        self._inflight: dict[str, asyncio.Task] = {}
        log.info("content_provider_ready", provider=type(self).__name__, modules=len(manifest))

    # --- key resolution ---

    def _candidate_keys(self, slug: str) -> list[str]:
        return [fmt.format(alias=self.alias, slug=slug) for fmt in self.key_formats]

    def key_for(self, slug: str) -> str | None:
        """First key format present in the manifest, else None."""
        for key in self._candidate_keys(slug):
            if key in self.manifest:
                return key
        return None

    def slug_for(self, key: str) -> str:
        """Invert a manifest key to its slug using the configured formats."""
        for fmt in self.key_formats:
            prefix, _, suffix = fmt.format(alias=self.alias, slug="\0").partition("\0")
            if key.startswith(prefix) and key.endswith(suffix) and len(key) > len(prefix) + len(suffix):
                return key[len(prefix):len(key) - len(suffix)]
        slug = key.lstrip("/")
        return slug[:-len(".md")] if slug.endswith(".md") else slug

    def slugs(self) -> list[str]:
        """All known slugs, in manifest order."""
        return [self.slug_for(key) for key in self.manifest]

    # --- loading ---

    async def _load(self, slug: str) -> ContentArtifact:
        key = self.key_for(slug)
        if key is None:
            raise NotFoundError(slug, self.slugs())
        log.debug("content_loading", slug=slug, key=key)
        return await self.manifest[key]()

    def _settle(self, slug: str, task: asyncio.Task) -> None:
        """Done-callback: drop the in-flight entry, cache only successful results."""
        if self._inflight.get(slug) is not task:
            return  # invalidated while loading
        del self._inflight[slug]
        if not task.cancelled() and task.exception() is None:
            self._cache[slug] = task.result()

    async def load_content(self, slug: str) -> ContentArtifact:
        if slug in self._cache:
            return self._cache[slug]
        task = self._inflight.get(slug)
        if task is None:
            task = asyncio.ensure_future(self._load(slug))
            self._inflight[slug] = task
            task.add_done_callback(partial(self._settle, slug))
        # shield: a cancelled caller must not cancel the load other callers share
        return await asyncio.shield(task)

    async def load_collection(self, filters: ContentFilters | None = None) -> list[ContentArtifact]:
        # every candidate is loaded before filtering; the predicate needs frontmatter
        results = await asyncio.gather(*(self.load_content(slug) for slug in self.slugs()))
        if filters is None:
            return list(results)
        return [r for r in results if filters.matches(r.frontmatter)]

    def invalidate(self, slug: str | None = None) -> None:
        if slug is None:
            self._cache.clear()
            self._inflight.clear()
            log.info("content_invalidated", scope="all")
            return
        self._cache.pop(slug, None)
        self._inflight.pop(slug, None)
        log.info("content_invalidated", slug=slug)

    def is_cached(self, slug: str) -> bool:
        return slug in self._cache

    def close(self) -> None:
        """Teardown: clear the cache and in-flight tables."""
        self.invalidate()


class PrecompiledContentProvider(ManifestContentProvider):
    """Serves artifacts compiled ahead of time; never parses markdown."""

    @classmethod
    def from_build_dir(
        cls,
        out_dir: Path | str,
        alias: str = "@content",
        key_formats: Sequence[str] = DEFAULT_KEY_FORMATS,
        ) -> PrecompiledContentProvider:
        return cls(ContentManifest.from_build_dir(out_dir), alias, key_formats)

    async def render_markdown(self, markdown: str, options: RenderOptions | None = None) -> str:
        raise UnsupportedOperationError("render_markdown", type(self).__name__, "content is precompiled")

    def validate_content(self, content: Any, schema: type[BaseModel]) -> ValidationResult:
        raise UnsupportedOperationError(
            "validate_content", type(self).__name__, "validate with mdcontent.core.schemas at the call site"
        )


class SourceContentProvider(ManifestContentProvider):
    """Compiles markdown under a content root on first load; supports runtime rendering."""

    def __init__(
        self,
        content_root: Path | str,
        alias: str = "@content",
        options: RenderOptions | None = None,
        key_formats: Sequence[str] = DEFAULT_KEY_FORMATS,
        words_per_minute: int = 200,
        excerpt_separator: str = "---",
        ):
        self.content_root = Path(content_root)
        self.options = options or RenderOptions()
        manifest = ContentManifest.from_sources(
            self.content_root, alias, self.options, words_per_minute, excerpt_separator
        )
        super().__init__(manifest, alias, key_formats)

    async def render_markdown(self, markdown: str, options: RenderOptions | None = None) -> str:
        return await asyncio.to_thread(render_html, markdown, options or self.options)

    def validate_content(self, content: Any, schema: type[BaseModel]) -> ValidationResult:
        return validate_content(content, schema)
