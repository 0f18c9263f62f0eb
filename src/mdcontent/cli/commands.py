"""CLI command implementations"""

import asyncio
from pathlib import Path
from typing import Annotated, Optional

import typer

from mdcontent.config import Settings, load_config
from mdcontent.core.compile import build_content
from mdcontent.core.errors import CompileError, ContentError
from mdcontent.core.frontmatter import split_frontmatter
from mdcontent.core.models import ContentFilters, RenderOptions
from mdcontent.core.reload import HotReloadInvalidator
from mdcontent.core.schemas import validate_artifact
from mdcontent.core.transform import render_html
from mdcontent.runtime import make_provider, make_rebuild


def _fail(msg: str, cause: Exception = None) -> None:
    """Print a user-friendly error to stderr and exit 1."""
    typer.echo(f"Error: {msg}", err=True)
    if cause:
        typer.echo(f"  {cause}", err=True)
    raise typer.Exit(1)


def _settings(overrides: dict = None) -> Settings:
    """Load config with standard CLI error handling."""
    try:
        return load_config(overrides=overrides)
    except ValueError as e:
        _fail(str(e))


def _build(settings: Settings) -> None:
    try:
        built = build_content(
            settings.content_root, settings.output_dir, settings.content_alias,
            settings.render_options(), settings.words_per_minute, settings.excerpt_separator,
        )
    except CompileError as e:
        _fail("Build failed", e)
    for b in built:
        typer.echo(f"  {b.source} -> {b.module}")
    typer.echo(f"Compiled {len(built)} document(s) to {settings.output_dir}/")


def build_cmd(
    path: Annotated[Optional[str], typer.Argument(help="Content root to compile")] = None,
    out: Annotated[Optional[str], typer.Option("--out-dir", help="Output directory")] = None,
    alias: Annotated[Optional[str], typer.Option("--alias", help="Manifest key prefix")] = None,
    sanitize: Annotated[Optional[bool], typer.Option("--sanitize/--no-sanitize", help="Sanitize compiled HTML")] = None,
    ):
    """Compile markdown sources into importable artifact modules + manifest.json."""
    settings = _settings(overrides={
        "content_root": path, "output_dir": out, "content_alias": alias, "sanitize": sanitize,
    })
    _build(settings)


def watch_cmd(
    path: Annotated[Optional[str], typer.Argument(help="Content root to watch")] = None,
    out: Annotated[Optional[str], typer.Option("--out-dir", help="Output directory")] = None,
    ):
    """Build once, then recompile sources as they change (Ctrl+C to stop)."""
    settings = _settings(overrides={"content_root": path, "output_dir": out})
    _build(settings)
    rebuild_modules = make_rebuild(settings, on_error=lambda e: typer.echo(f"Error: {e}", err=True))

    async def rebuild(paths: list[Path]) -> None:
        for p in await rebuild_modules(paths):
            typer.echo(f"  rebuilt {p}")

    # nothing in this process serves content, so there is no provider to invalidate
    invalidator = HotReloadInvalidator(None, settings.content_root)
    typer.echo(f"Watching {settings.content_root}/ ...")
    try:
        asyncio.run(invalidator.watch(rebuild))
    except KeyboardInterrupt:
        typer.echo("Stopped.")


def list_cmd(
    out: Annotated[Optional[str], typer.Option("--out-dir", help="Build directory")] = None,
    content_type: Annotated[Optional[str], typer.Option("--type", help="Only this frontmatter type")] = None,
    tags: Annotated[Optional[list[str]], typer.Option("--tag", help="Match any of these tags")] = None,
    category: Annotated[Optional[str], typer.Option("--category", help="Only this category")] = None,
    ):
    """List compiled content, optionally filtered by type, tag or category."""
    settings = _settings(overrides={"output_dir": out})
    provider = make_provider(settings)
    filters = ContentFilters(type=content_type, tags=tags or [], category=category)
    try:
        results = asyncio.run(provider.load_collection(filters))
    except ContentError as e:
        _fail("Could not load content", e)
    if not results:
        typer.echo("No content found.")
        raise typer.Exit(1)
    for artifact in sorted(results, key=lambda a: a.slug):
        title = artifact.frontmatter.get("title", "")
        typer.echo(f"{artifact.slug}\t{artifact.frontmatter.get('type', '-')}\t{title}")


def show_cmd(
    slug: Annotated[str, typer.Argument(help="Content slug, e.g. blog/first-post")],
    out: Annotated[Optional[str], typer.Option("--out-dir", help="Build directory")] = None,
    ):
    """Print one compiled artifact as JSON."""
    settings = _settings(overrides={"output_dir": out})
    provider = make_provider(settings)
    try:
        artifact = asyncio.run(provider.load_content(slug))
    except ContentError as e:
        _fail(str(e))
    typer.echo(artifact.model_dump_json(by_alias=True, indent=2))


def validate_cmd(
    out: Annotated[Optional[str], typer.Option("--out-dir", help="Build directory")] = None,
    ):
    """Check every compiled artifact's frontmatter against its content-type schema."""
    settings = _settings(overrides={"output_dir": out})
    provider = make_provider(settings)
    try:
        results = asyncio.run(provider.load_collection())
    except ContentError as e:
        _fail("Could not load content", e)

    invalid = 0
    for artifact in sorted(results, key=lambda a: a.slug):
        result = validate_artifact(artifact)
        if result.success:
            continue
        invalid += 1
        typer.echo(f"{artifact.slug}:")
        for line in result.messages():
            typer.echo(f"  {line}")
    typer.echo(f"Validated {len(results)} document(s), {invalid} invalid")
    if invalid:
        raise typer.Exit(1)


def render_cmd(
    file: Annotated[Path, typer.Argument(exists=True, dir_okay=False, help="Markdown file to render")],
    sanitize: Annotated[bool, typer.Option("--sanitize/--no-sanitize", help="Strip unsafe markup")] = True,
    allow_html: Annotated[bool, typer.Option("--html/--no-html", help="Pass raw HTML through")] = True,
    heading_ids: Annotated[bool, typer.Option("--heading-ids/--no-heading-ids", help="Add heading ids and anchors")] = True,
    link_target: Annotated[Optional[str], typer.Option("--link-target", help="_blank or _self for external links")] = "_blank",
    ):
    """Render a markdown file to HTML with per-call options (frontmatter is skipped)."""
    try:
        options = RenderOptions(
            sanitize=sanitize, allow_html=allow_html,
            generate_heading_ids=heading_ids, external_link_target=link_target,
        )
        body = split_frontmatter(file.read_text(encoding="utf-8")).body
    except ValueError as e:
        _fail(f"Cannot render {file}", e)
    typer.echo(render_html(body, options))
