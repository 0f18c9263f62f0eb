"""Application configuration: settings schema and config.yaml loader"""

import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field

from mdcontent.core.models import RenderOptions


CONFIG_FILE = "config.yaml"
ENV_PREFIX = "MDCONTENT_"


class Settings(BaseModel):
    app_name:      str = "mdcontent"
    content_root:  str = Field(default="content",          description="Directory holding markdown sources")
    content_alias: str = Field(default="@content",         description="Logical prefix used in manifest keys")
    output_dir:    str = Field(default=".mdcontent/build", description="Directory for compiled modules + manifest.json")
    sanitize:      bool = Field(default=True,  description="Strip script/handler/injection markup at compile time")
    allow_html:    bool = Field(default=True,  description="Pass raw embedded HTML through the markdown renderer")
    generate_heading_ids: bool = Field(default=True, description="Assign heading ids, anchors and collect headings")
    external_link_target: Optional[str] = Field(default="_blank", pattern="^(_blank|_self)$",
                                                description="target for external links; None leaves links untouched")
    internal_hosts: list[str] = Field(default=[], description="Hosts whose absolute links are not external")
    key_formats:   list[str] = Field(default=["{alias}/{slug}.md", "/content/{slug}.md"],
                                     description="Manifest key templates tried in order during lookup")
    words_per_minute:  int = Field(default=200, ge=1, description="Reading speed used for meta.reading_time")
    excerpt_separator: str = Field(default="---", min_length=1, description="Body line that ends the excerpt")
    log_level:     str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")

    def render_options(self) -> RenderOptions:
        """Pipeline-level render options derived from these settings."""
        return RenderOptions(
            sanitize=self.sanitize,
            allow_html=self.allow_html,
            generate_heading_ids=self.generate_heading_ids,
            external_link_target=self.external_link_target,
            internal_hosts=tuple(self.internal_hosts),
        )


def _env_value(name: str, raw: str) -> Any:
    """List fields are read from comma-separated env vars; everything else is left to pydantic."""
    if isinstance(Settings.model_fields[name].default, list):
        return [part.strip() for part in raw.split(",") if part.strip()]
    return raw


def load_config(overrides: dict[str, Any] = None) -> Settings:
    """Load Settings from config.yaml, then MDCONTENT_<FIELD> env vars, then non-None CLI overrides."""
    data: dict[str, Any] = {}
    if Path(CONFIG_FILE).exists():
        try:
            data = yaml.safe_load(Path(CONFIG_FILE).read_text()) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid {CONFIG_FILE}: {e}") from e

    for name in Settings.model_fields:
        if val := os.getenv(f"{ENV_PREFIX}{name.upper()}"):
            data[name] = _env_value(name, val)

    if overrides:
        data.update({k: v for k, v in overrides.items() if v is not None})
    return Settings(**data)
