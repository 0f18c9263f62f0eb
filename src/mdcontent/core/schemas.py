"""Frontmatter schemas per content type and structured validation results"""

from dataclasses import dataclass, field
from typing import Any, Generic, Literal, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError


class _Content(BaseModel):
    # unknown frontmatter keys are kept, not rejected
    model_config = ConfigDict(extra="allow")


class Feature(BaseModel):
    label: str
    icon:  str
    color: Optional[str] = None


class Action(BaseModel):
    label:   str
    href:    str
    variant: Optional[Literal["default", "outline", "secondary"]] = None


class ProjectContent(_Content):
    type:        Literal["project"]
    title:       str
    description: str
    tech_stack:  list[str] = Field(alias="techStack")
    image:       str
    repo_url:    str = Field(alias="repoUrl")
    live_url:    Optional[str] = Field(default=None, alias="liveUrl")
    features:    list[Feature]
    actions:     list[Action]


class QuoteContent(_Content):
    type:    Literal["quote"]
    quote:   str
    author:  str
    role:    Optional[str] = None
    company: Optional[str] = None
    avatar:  Optional[str] = None
    theme:   Optional[Literal["default", "minimal", "emphasis"]] = None


class VideoContent(_Content):
    type:         Literal["video"]
    title:        str
    description:  str
    thumbnail:    str
    video_url:    str = Field(alias="videoUrl")
    display_mode: Literal["thumbnail", "background", "player"] = Field(alias="displayMode")
    autoplay:     Optional[bool] = None
    loop:         Optional[bool] = None


class Author(BaseModel):
    name:   str
    avatar: Optional[str] = None
    role:   Optional[str] = None


class ArticleContent(_Content):
    type:         Literal["article"]
    title:        str
    description:  str
    author:       Optional[Author] = None
    published_at: Optional[str] = Field(default=None, alias="publishedAt")
    tags:         list[str] = []
    category:     Optional[str] = None
    image:        Optional[str] = None
    featured:     bool = False
    status:       Literal["draft", "published"] = "published"


CONTENT_SCHEMAS: dict[str, type[BaseModel]] = {
    "project": ProjectContent,
    "quote":   QuoteContent,
    "video":   VideoContent,
    "article": ArticleContent,
}

M = TypeVar("M", bound=BaseModel)


@dataclass(frozen=True)
class ValidationIssue:
    path:    tuple[str | int, ...]
    message: str


@dataclass(frozen=True)
class ValidationResult(Generic[M]):
    """Either `data` (success) or field-level `issues`; never both."""
    success: bool
    data:    Optional[M] = None
    issues:  tuple[ValidationIssue, ...] = field(default_factory=tuple)

    def messages(self) -> list[str]:
        """`path: message` lines, for display."""
        return [f"{'.'.join(str(p) for p in i.path) or '<root>'}: {i.message}" for i in self.issues]


def validate_content(content: Any, schema: type[M]) -> ValidationResult[M]:
    """Validate content against schema; failures are returned, not raised."""
    try:
        data = schema.model_validate(content)
    except ValidationError as e:
        return ValidationResult(
            success=False,
            issues=tuple(ValidationIssue(path=tuple(err["loc"]), message=err["msg"]) for err in e.errors()),
        )
    return ValidationResult(success=True, data=data)


def validate_artifact(artifact) -> ValidationResult:
    """Validate an artifact's frontmatter against the schema named by its `type`."""
    content_type = artifact.frontmatter.get("type")
    schema = CONTENT_SCHEMAS.get(content_type)
    if schema is None:
        return ValidationResult(
            success=False,
            issues=(ValidationIssue(
                path=("type",),
                message=f"Unknown content type {content_type!r}; expected one of {', '.join(CONTENT_SCHEMAS)}",
            ),),
        )
    return validate_content(dict(artifact.frontmatter), schema)
