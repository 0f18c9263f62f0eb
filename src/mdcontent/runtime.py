"""Process-wide content runtime: one provider per content root, explicit lifecycle"""

import asyncio
import contextlib
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import structlog

from mdcontent.config import Settings
from mdcontent.core.compile import build_file
from mdcontent.core.engine import ManifestContentProvider, PrecompiledContentProvider, SourceContentProvider
from mdcontent.core.errors import CompileError
from mdcontent.core.reload import HotReloadInvalidator


log = structlog.get_logger()


@dataclass
class ContentRuntime:
    """Holds the single provider that consumers receive by reference."""
    settings:    Settings
    provider:    ManifestContentProvider
    invalidator: HotReloadInvalidator


def make_provider(settings: Settings, source: bool = False) -> ManifestContentProvider:
    """Precompiled provider over settings.output_dir, or a source provider over content_root."""
    if source:
        return SourceContentProvider(
            settings.content_root,
            alias=settings.content_alias,
            options=settings.render_options(),
            key_formats=settings.key_formats,
            words_per_minute=settings.words_per_minute,
            excerpt_separator=settings.excerpt_separator,
        )
    return PrecompiledContentProvider.from_build_dir(
        settings.output_dir, alias=settings.content_alias, key_formats=settings.key_formats
    )


def make_rebuild(settings: Settings, on_error: Optional[Callable[[CompileError], None]] = None):
    """Watch callback that recompiles changed sources into settings.output_dir.

    A file that fails to compile is logged (and passed to on_error) and keeps
    its previous module; the rest of the batch and later batches still build.
    Returns the paths that were rebuilt.
    """
    async def rebuild(paths: list[Path]) -> list[Path]:
        rebuilt = []
        for path in paths:
            try:
                await asyncio.to_thread(
                    build_file, path, settings.content_root, settings.output_dir,
                    settings.content_alias, settings.render_options(),
                    settings.words_per_minute, settings.excerpt_separator,
                )
            except CompileError as e:
                log.error("content_compile_failed", path=str(path), error=str(e.cause))
                if on_error is not None:
                    on_error(e)
                continue
            rebuilt.append(path)
        return rebuilt
    return rebuild


@contextlib.asynccontextmanager
async def open_runtime(settings: Settings, source: bool = False, watch: bool = False) -> AsyncIterator[ContentRuntime]:
    """Create the runtime, optionally watch sources, and tear everything down on exit."""
    provider = make_provider(settings, source)
    runtime = ContentRuntime(settings, provider, HotReloadInvalidator(provider, settings.content_root))
    stop = asyncio.Event()
    watcher: Optional[asyncio.Task] = None
    if watch:
        rebuild = None if source else make_rebuild(settings)
        watcher = asyncio.create_task(runtime.invalidator.watch(rebuild, stop_event=stop))
    log.info("content_runtime_started", source=source, watch=watch)
    try:
        yield runtime
    finally:
        stop.set()
        if watcher is not None:
            await watcher
        provider.close()
        log.info("content_runtime_stopped")
