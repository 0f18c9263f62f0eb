"""Artifact compilation, module emission and content builds"""

import asyncio
import json
import os
from datetime import datetime, timezone
from pathlib import Path

import structlog
from pydantic_core import to_jsonable_python

from mdcontent.core.errors import CompileError
from mdcontent.core.frontmatter import MD_EXTENSION, discover_files, split_frontmatter
from mdcontent.core.manifest import key_for, read_manifest, write_manifest
from mdcontent.core.metrics import WORDS_PER_MINUTE, path_slug, reading_time, word_count
from mdcontent.core.models import BuiltModule, ContentArtifact, ContentMeta, RenderOptions
from mdcontent.core.transform import render


log = structlog.get_logger()

MODULE_TEMPLATE = '''\
# Generated by mdcontent from {source}. Do not edit.
import json
from datetime import datetime

from mdcontent.core.models import ContentArtifact

artifact = ContentArtifact(
    frontmatter=json.loads({frontmatter}),
    content_html={content_html},
    excerpt={excerpt},
    slug={slug},
    last_modified=datetime.fromisoformat({last_modified}),
    meta=json.loads({meta}),
)
'''


def _json_literal(value) -> str:
    """JSON text that is also a valid Python literal (strings only, non-ASCII kept raw)."""
    return json.dumps(value, ensure_ascii=False)


def _mtime(path: Path) -> datetime:
    return datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)


def _read_source(path: Path) -> tuple[str, datetime]:
    return path.read_text(encoding="utf-8"), _mtime(path)


def compile_source(
    raw: str,
    path: Path | str,
    content_root: Path | str | None = None,
    options: RenderOptions | None = None,
    last_modified: datetime | None = None,
    words_per_minute: int = WORDS_PER_MINUTE,
    excerpt_separator: str = "---",
    ) -> ContentArtifact:
    """Compile raw file text into a ContentArtifact. Raises CompileError on any failure."""
    try:
        split = split_frontmatter(raw, excerpt_separator)
        rendered = render(split.body, options)
        words = word_count(split.body)
        return ContentArtifact(
            frontmatter=to_jsonable_python(split.frontmatter),
            content_html=rendered.html,
            excerpt=split.excerpt,
            slug=path_slug(path, content_root),
            last_modified=last_modified or datetime.now(timezone.utc),
            meta=ContentMeta(
                word_count=words,
                reading_time=reading_time(words, words_per_minute),
                headings=rendered.headings,
            ),
        )
    except Exception as e:
        raise CompileError(path, e) from e


async def compile_file(
    path: Path,
    content_root: Path | str | None = None,
    options: RenderOptions | None = None,
    words_per_minute: int = WORDS_PER_MINUTE,
    excerpt_separator: str = "---",
    ) -> ContentArtifact:
    """Read path off the event loop, then compile it."""
    try:
        raw, mtime = await asyncio.to_thread(_read_source, Path(path))
    except OSError as e:
        raise CompileError(path, e) from e
    return compile_source(raw, path, content_root, options, mtime, words_per_minute, excerpt_separator)


def emit_module(artifact: ContentArtifact, source: str = "") -> str:
    """Python source whose `artifact` attribute reconstructs the given artifact."""
    meta = artifact.meta.model_dump(mode="json")
    return MODULE_TEMPLATE.format(
        source=source or artifact.slug,
        frontmatter=repr(json.dumps(dict(artifact.frontmatter), ensure_ascii=False)),
        content_html=_json_literal(artifact.content_html),
        excerpt=_json_literal(artifact.excerpt) if artifact.excerpt is not None else "None",
        slug=_json_literal(artifact.slug),
        last_modified=_json_literal(artifact.last_modified.isoformat()),
        meta=repr(json.dumps(meta, ensure_ascii=False)),
    )


def transform_source(
    path: Path | str,
    raw: str,
    content_root: Path | str | None = None,
    options: RenderOptions | None = None,
    words_per_minute: int = WORDS_PER_MINUTE,
    excerpt_separator: str = "---",
    ) -> str | None:
    """Build hook: generated module source for a markdown file, None for anything else."""
    if not str(path).endswith(MD_EXTENSION):
        return None
    path = Path(path)
    last_modified = _mtime(path) if path.exists() else None
    artifact = compile_source(raw, path, content_root, options, last_modified, words_per_minute, excerpt_separator)
    return emit_module(artifact, source=_display_path(path, content_root))


def _display_path(path: Path, content_root: Path | str | None) -> str:
    return f"{path_slug(path, content_root)}{MD_EXTENSION}"


def _write_atomic(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(f".{path.name}.tmp")
    tmp.write_text(text, encoding="utf-8")
    os.replace(tmp, path)


def _build_one(
    path: Path,
    content_root: Path,
    out_dir: Path,
    alias: str,
    options: RenderOptions | None,
    words_per_minute: int,
    excerpt_separator: str,
    ) -> BuiltModule:
    try:
        raw, mtime = _read_source(path)
    except OSError as e:
        raise CompileError(path, e) from e
    artifact = compile_source(raw, path, content_root, options, mtime, words_per_minute, excerpt_separator)
    module = out_dir / f"{artifact.slug}.py"
    _write_atomic(module, emit_module(artifact, source=_display_path(path, content_root)))
    log.debug("content_compiled", slug=artifact.slug, module=str(module))
    return BuiltModule(source=path, module=module, key=key_for(alias, artifact.slug), slug=artifact.slug)


def build_content(
    content_root: Path | str,
    out_dir: Path | str,
    alias: str = "@content",
    options: RenderOptions | None = None,
    words_per_minute: int = WORDS_PER_MINUTE,
    excerpt_separator: str = "---",
    ) -> list[BuiltModule]:
    """Compile every source under content_root into out_dir and write manifest.json.

    A failing file does not stop the others; the manifest lists every module
    that compiled, then the first CompileError is raised.
    """
    root, out = Path(content_root), Path(out_dir)
    out.mkdir(parents=True, exist_ok=True)
    built: list[BuiltModule] = []
    errors: list[CompileError] = []
    for path in discover_files(root):
        try:
            built.append(_build_one(path, root, out, alias, options, words_per_minute, excerpt_separator))
        except CompileError as e:
            log.error("content_compile_failed", path=str(path), error=str(e.cause))
            errors.append(e)

    write_manifest(out, {b.key: b.module.relative_to(out).as_posix() for b in built})
    log.info("content_built", content_root=str(root), out_dir=str(out), modules=len(built), failed=len(errors))
    if errors:
        raise errors[0]
    return built


def build_file(
    path: Path | str,
    content_root: Path | str,
    out_dir: Path | str,
    alias: str = "@content",
    options: RenderOptions | None = None,
    words_per_minute: int = WORDS_PER_MINUTE,
    excerpt_separator: str = "---",
    ) -> BuiltModule | None:
    """Recompile one source and update its manifest entry; a deleted source drops its entry."""
    path, root, out = Path(path), Path(content_root), Path(out_dir)
    modules = read_manifest(out)
    if not path.exists():
        key = key_for(alias, path_slug(path, root))
        rel = modules.pop(key, None)
        if rel is not None:
            (out / rel).unlink(missing_ok=True)
            write_manifest(out, modules)
            log.info("content_removed", key=key)
        return None
    result = _build_one(path, root, out, alias, options, words_per_minute, excerpt_separator)
    modules[result.key] = result.module.relative_to(out).as_posix()
    write_manifest(out, modules)
    log.info("content_rebuilt", slug=result.slug)
    return result
