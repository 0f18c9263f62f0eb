"""Build manifest: content key -> loader mapping consumed by providers"""

import asyncio
import json
import types
from collections.abc import Awaitable, Callable, Iterator, Mapping
from pathlib import Path

import structlog

from mdcontent.core.models import ContentArtifact, RenderOptions


log = structlog.get_logger()

MANIFEST_FILE = "manifest.json"
ARTIFACT_ATTR = "artifact"

Loader = Callable[[], Awaitable[ContentArtifact]]


def key_for(alias: str, slug: str) -> str:
    """Manifest key written by the build step."""
    return f"{alias.rstrip('/')}/{slug}.md"


def read_manifest(out_dir: Path) -> dict[str, str]:
    """Return {key: module path relative to out_dir}; {} if no build exists yet."""
    path = Path(out_dir) / MANIFEST_FILE
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid {path}: {e}") from e
    return dict(data.get("modules", {}))


def write_manifest(out_dir: Path, modules: Mapping[str, str]) -> Path:
    path = Path(out_dir) / MANIFEST_FILE
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps({"modules": dict(sorted(modules.items()))}, indent=2), encoding="utf-8")
    return path


def import_artifact(module_path: Path) -> ContentArtifact:
    """Execute a generated module and return its `artifact`.

    The module is compiled from source on every call and kept out of
    sys.modules and __pycache__, so a rebuilt file is never served stale.
    """
    source = Path(module_path).read_text(encoding="utf-8")
    module = types.ModuleType(f"mdcontent_generated_{Path(module_path).stem}")
    module.__file__ = str(module_path)
    exec(compile(source, str(module_path), "exec"), module.__dict__)
    artifact = getattr(module, ARTIFACT_ATTR, None)
    if not isinstance(artifact, ContentArtifact):
        raise TypeError(f"{module_path} does not define a ContentArtifact named '{ARTIFACT_ATTR}'")
    return artifact


class ContentManifest(Mapping[str, Loader]):
    """Immutable key -> async loader mapping."""

    def __init__(self, loaders: Mapping[str, Loader] = None):
        self._loaders = dict(loaders or {})

    def __getitem__(self, key: str) -> Loader:
        return self._loaders[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._loaders)

    def __len__(self) -> int:
        return len(self._loaders)

    @classmethod
    def from_build_dir(cls, out_dir: Path | str) -> "ContentManifest":
        """Loaders that import the compiled modules listed in out_dir/manifest.json."""
        out_dir = Path(out_dir)
        modules = read_manifest(out_dir)
        log.info("manifest_loaded", out_dir=str(out_dir), modules=len(modules))
        return cls({key: _module_loader(out_dir / rel) for key, rel in modules.items()})

    @classmethod
    def from_sources(
        cls,
        content_root: Path | str,
        alias: str = "@content",
        options: RenderOptions | None = None,
        words_per_minute: int = 200,
        excerpt_separator: str = "---",
        ) -> "ContentManifest":
        """Loaders that compile each markdown source under content_root on demand."""
        from mdcontent.core.compile import compile_file
        from mdcontent.core.frontmatter import discover_files
        from mdcontent.core.metrics import path_slug

        root = Path(content_root)
        loaders: dict[str, Loader] = {}
        for path in discover_files(root):
            async def load(path: Path = path) -> ContentArtifact:
                return await compile_file(
                    path, root, options,
                    words_per_minute=words_per_minute, excerpt_separator=excerpt_separator,
                )
            loaders[key_for(alias, path_slug(path, root))] = load
        return cls(loaders)


def _module_loader(module_path: Path) -> Loader:
    async def load() -> ContentArtifact:
        return await asyncio.to_thread(import_artifact, module_path)
    return load
