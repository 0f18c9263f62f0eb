"""Unit tests for core/compile.py"""

import json
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from mdcontent.core.compile import (
    build_content,
    build_file,
    compile_file,
    compile_source,
    emit_module,
    transform_source,
)
from mdcontent.core.errors import CompileError
from mdcontent.core.manifest import MANIFEST_FILE, import_artifact, read_manifest
from mdcontent.core.models import ContentArtifact, RenderOptions


SCENARIO = "---\ntype: project\ntitle: T\n---\n# H1\ntext"


# --- compile_source ---

def test_compile_source_scenario(tmp_path):
    artifact = compile_source(SCENARIO, tmp_path / "t.md", tmp_path)
    assert artifact.frontmatter["type"] == "project"
    assert [h.model_dump() for h in artifact.meta.headings] == [{"depth": 1, "text": "H1", "id": "h1"}]
    assert '<h1 id="h1">' in artifact.content_html
    assert artifact.slug == "t"


def test_compile_source_metadata(project_md, tmp_path):
    artifact = compile_source(project_md, tmp_path / "p.md", tmp_path)
    assert artifact.meta.word_count > 0
    assert artifact.meta.reading_time == 1
    assert artifact.last_modified.tzinfo is not None


def test_compile_source_empty_body(tmp_path):
    artifact = compile_source("---\ntitle: Empty\n---\n", tmp_path / "e.md", tmp_path)
    assert artifact.meta.word_count == 0
    assert artifact.meta.reading_time == 0
    assert artifact.meta.headings == ()


def test_compile_source_slug_from_path_not_content(tmp_path):
    a = compile_source("---\nslug: other\n---\n# A\n", tmp_path / "blog" / "a.md", tmp_path)
    b = compile_source("# Completely different\n", tmp_path / "blog" / "a.md", tmp_path)
    assert a.slug == b.slug == "blog/a"


def test_compile_source_idempotent(project_md, tmp_path):
    first = compile_source(project_md, tmp_path / "p.md", tmp_path)
    second = compile_source(project_md, tmp_path / "p.md", tmp_path)
    assert first.content_html == second.content_html


def test_compile_source_dates_become_iso_strings(tmp_path):
    artifact = compile_source("---\ndate: 2026-01-15\nupdated: 2026-01-15T10:30:00\n---\nx\n", tmp_path / "d.md")
    assert artifact.frontmatter["date"] == "2026-01-15"
    assert artifact.frontmatter["updated"] == "2026-01-15T10:30:00"


def test_compile_source_excerpt(tmp_path):
    artifact = compile_source("---\ntitle: T\n---\nTeaser.\n---\nMore.\n", tmp_path / "x.md")
    assert artifact.excerpt == "Teaser."


def test_compile_source_bad_yaml_raises_compile_error(tmp_path):
    with pytest.raises(CompileError, match="bad.md") as exc:
        compile_source("---\ntitle: [unclosed\n---\n# Body\n", tmp_path / "bad.md")
    assert isinstance(exc.value.cause, ValueError)


def test_compile_source_transform_failure_raises(tmp_path, monkeypatch):
    """A throwing pipeline stage aborts the compile with the file named."""
    from mdcontent.core import compile as compile_module

    def broken_render(*args):
        raise RuntimeError("boom")

    monkeypatch.setattr(compile_module, "render", broken_render)
    with pytest.raises(CompileError, match="boom"):
        compile_source("# ok\n", tmp_path / "x.md")


def test_artifact_is_immutable(tmp_path):
    artifact = compile_source("# A\n", tmp_path / "a.md")
    with pytest.raises(ValidationError):
        artifact.slug = "changed"


# --- compile_file ---

@pytest.mark.asyncio
async def test_compile_file_uses_mtime(tmp_path):
    f = tmp_path / "note.md"
    f.write_text("# Note\n")
    artifact = await compile_file(f, tmp_path)
    expected = datetime.fromtimestamp(f.stat().st_mtime, tz=timezone.utc)
    assert artifact.last_modified == expected
    assert artifact.slug == "note"


@pytest.mark.asyncio
async def test_compile_file_missing_raises(tmp_path):
    with pytest.raises(CompileError, match="missing.md"):
        await compile_file(tmp_path / "missing.md", tmp_path)


# --- emit_module / transform_source ---

def test_emit_module_round_trips_through_import(project_md, tmp_path):
    artifact = compile_source(project_md, tmp_path / "p.md", tmp_path)
    module = tmp_path / "p.py"
    module.write_text(emit_module(artifact), encoding="utf-8")
    assert import_artifact(module) == artifact


def test_emit_module_embeds_literals(tmp_path):
    artifact = compile_source('---\ntitle: "Quotes \\" and é"\n---\nLine "one"\n', tmp_path / "q.md")
    source = emit_module(artifact)
    assert "json.loads(" in source
    assert json.dumps(artifact.content_html, ensure_ascii=False) in source
    assert f"datetime.fromisoformat({json.dumps(artifact.last_modified.isoformat())})" in source


def test_transform_source_ignores_non_markdown(tmp_path):
    assert transform_source(tmp_path / "style.css", "body {}") is None


def test_transform_source_returns_module(tmp_path):
    f = tmp_path / "page.md"
    f.write_text(SCENARIO)
    source = transform_source(f, SCENARIO, tmp_path)
    assert "artifact = ContentArtifact(" in source
    assert '"page"' in source


# --- build_content / build_file ---

def test_build_content_writes_modules_and_manifest(content_root, out_dir):
    built = build_content(content_root, out_dir)
    assert sorted(b.slug for b in built) == ["blog/2024/post", "project", "quotes/first"]
    assert (out_dir / "blog" / "2024" / "post.py").exists()
    manifest = read_manifest(out_dir)
    assert manifest == {
        "@content/blog/2024/post.md": "blog/2024/post.py",
        "@content/project.md": "project.py",
        "@content/quotes/first.md": "quotes/first.py",
    }


def test_build_content_custom_alias(content_root, out_dir):
    build_content(content_root, out_dir, alias="@site")
    assert all(key.startswith("@site/") for key in read_manifest(out_dir))


def test_build_content_sanitize_option(tmp_path, out_dir):
    root = tmp_path / "content"
    root.mkdir()
    (root / "raw.md").write_text('<div onclick="x()">hi</div>\n')
    build_content(root, out_dir, options=RenderOptions(sanitize=False))
    assert "onclick" in import_artifact(out_dir / "raw.py").content_html
    build_content(root, out_dir, options=RenderOptions(sanitize=True))
    assert "onclick" not in import_artifact(out_dir / "raw.py").content_html


def test_build_content_failure_keeps_other_modules(content_root, out_dir):
    (content_root / "broken.md").write_text("---\ntitle: [unclosed\n---\n")
    with pytest.raises(CompileError, match="broken.md"):
        build_content(content_root, out_dir)
    manifest = read_manifest(out_dir)
    assert "@content/project.md" in manifest
    assert "@content/broken.md" not in manifest
    assert isinstance(import_artifact(out_dir / "project.py"), ContentArtifact)


def test_build_file_updates_single_entry(content_root, out_dir):
    build_content(content_root, out_dir)
    target = content_root / "quotes" / "first.md"
    target.write_text("---\ntype: quote\nquote: Changed\nauthor: A\n---\nNew body\n")
    result = build_file(target, content_root, out_dir)
    assert result.slug == "quotes/first"
    assert import_artifact(out_dir / "quotes" / "first.py").frontmatter["quote"] == "Changed"
    assert len(read_manifest(out_dir)) == 3


def test_build_file_adds_new_source(content_root, out_dir):
    build_content(content_root, out_dir)
    new = content_root / "fresh.md"
    new.write_text("# Fresh\n")
    build_file(new, content_root, out_dir)
    assert "@content/fresh.md" in read_manifest(out_dir)


def test_build_file_removes_deleted_source(content_root, out_dir):
    build_content(content_root, out_dir)
    target = content_root / "project.md"
    target.unlink()
    assert build_file(target, content_root, out_dir) is None
    assert "@content/project.md" not in read_manifest(out_dir)
    assert not (out_dir / "project.py").exists()


def test_manifest_file_is_json(content_root, out_dir):
    build_content(content_root, out_dir)
    data = json.loads((out_dir / MANIFEST_FILE).read_text())
    assert set(data) == {"modules"}


def test_artifact_json_keeps_frontmatter(project_md, tmp_path):
    artifact = compile_source(project_md, tmp_path / "p.md", tmp_path)
    data = json.loads(artifact.model_dump_json(by_alias=True))
    assert data["frontmatter"]["techStack"] == ["React", "TypeScript"]
    assert data["contentHtml"] == artifact.content_html
