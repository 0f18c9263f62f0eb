"""Content artifact, filter and render option models shared by the compiler and providers"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from types import MappingProxyType
from typing import Annotated, Any, Literal, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_serializer
from pydantic.alias_generators import to_camel


class _Frozen(BaseModel):
    """Immutable model that also exports camelCase keys for JS-side consumers."""
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class Heading(_Frozen):
    depth: int = Field(ge=1, le=6)
    text:  str
    id:    str


class ContentMeta(_Frozen):
    word_count:   int = Field(ge=0)
    reading_time: int = Field(ge=0, description="Minutes, ceil(word_count / words_per_minute)")
    headings:     tuple[Heading, ...] = ()


def _read_only(value: Mapping[str, Any]) -> Mapping[str, Any]:
    return MappingProxyType(dict(value))


class ContentArtifact(_Frozen):
    """Compiled output of one markdown source; never mutated after creation.

    Providers hand the same cached instance to every caller, so the top-level
    frontmatter mapping is read-only too.
    """
    frontmatter:   Annotated[Mapping[str, Any], AfterValidator(_read_only)] = Field(
                       default_factory=dict, validate_default=True)
    content_html:  str
    excerpt:       Optional[str] = None
    slug:          str
    last_modified: datetime
    meta:          ContentMeta

    @field_serializer("frontmatter")
    def _frontmatter_dict(self, value: Mapping[str, Any]) -> dict[str, Any]:
        return dict(value)


class ContentFilters(BaseModel):
    """Post-load predicate over artifact frontmatter."""
    type:     Optional[str] = None
    tags:     list[str] = []
    category: Optional[str] = None

    def matches(self, frontmatter: Mapping[str, Any]) -> bool:
        if self.type is not None and frontmatter.get("type") != self.type:
            return False
        if self.tags:
            own = frontmatter.get("tags") or []
            if isinstance(own, str):
                own = [own]
            if not set(self.tags) & set(own):
                return False
        if self.category is not None and frontmatter.get("category") != self.category:
            return False
        return True


class RenderOptions(BaseModel):
    """Per-call switches for the markdown -> HTML transform."""
    model_config = ConfigDict(frozen=True)

    sanitize:             bool = True
    allow_html:           bool = True
    generate_heading_ids: bool = True
    external_link_target: Optional[Literal["_blank", "_self"]] = "_blank"
    internal_hosts:       tuple[str, ...] = ()


@dataclass(frozen=True)
class FrontmatterResult:
    """Split of a source file: YAML mapping, markdown body, optional excerpt."""
    frontmatter: dict[str, Any] = field(default_factory=dict)
    body:        str = ""
    excerpt:     Optional[str] = None


@dataclass(frozen=True)
class RenderResult:
    html:     str
    headings: tuple[Heading, ...] = ()


@dataclass(frozen=True)
class BuiltModule:
    """One compiled source written by the build step."""
    source: Path
    module: Path
    key:    str
    slug:   str
