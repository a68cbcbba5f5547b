"""Configuration models using Pydantic.

``FeedSettings`` holds the values that used to be process-wide defaults
(where feeds are stored, which page lists them, HTTP timeouts).  A single
instance is built at the composition root and threaded through
``Catalog`` into every ``Feed``.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

NVD_BASE_URL = "https://nvd.nist.gov"
NVD_FEEDS_PAGE_URL = f"{NVD_BASE_URL}/vuln/data-feeds"

STORAGE_ENV_VAR = "NVDFEEDS_STORAGE"


class FeedSettings(BaseModel):
    """Validated runtime settings.

    Attributes:
        storage_location: Directory where archives and JSON files are
            written when no explicit destination is given.
        base_url: Site root joined onto the relative links of the feeds page.
        feeds_page_url: Page listing the available feeds.
        connect_timeout: Seconds to wait for a connection.
        read_timeout: Seconds to wait between bytes of a response.
        user_agent: ``User-Agent`` header sent with every request.
        max_workers: Thread count for parallel pulls.

    Example YAML::

        storage_location: /srv/downloads
        read_timeout: 300
        max_workers: 4
    """

    storage_location: Path = Field(default_factory=lambda: Path(tempfile.gettempdir()))
    base_url: str = NVD_BASE_URL
    feeds_page_url: str = NVD_FEEDS_PAGE_URL
    connect_timeout: float = Field(default=10.0, gt=0.0)
    read_timeout: float = Field(default=300.0, gt=0.0)
    user_agent: str = "nvdfeeds/0.1"
    max_workers: int = Field(default=4, ge=1, le=32)

    @field_validator("storage_location", mode="before")
    @classmethod
    def _expand_storage(cls, v: Any) -> Any:
        """Expand ``~`` so YAML files can use home-relative paths."""
        if isinstance(v, str):
            if not v.strip():
                raise ValueError("storage_location must not be empty")
            return Path(v).expanduser()
        if isinstance(v, Path):
            return v.expanduser()
        return v

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def http_timeout(self) -> tuple[float, float]:
        """``(connect, read)`` tuple for ``requests``."""
        return (self.connect_timeout, self.read_timeout)


def load_settings(path: Path | None = None) -> FeedSettings:
    """Load settings from a YAML or JSON file, then apply the environment.

    ``NVDFEEDS_STORAGE`` overrides ``storage_location`` whichever way the
    rest of the settings were obtained.

    Args:
        path: Optional settings file. ``None`` means defaults only.

    Returns:
        Validated ``FeedSettings`` instance.

    Raises:
        FileNotFoundError: if ``path`` doesn't exist.
        pydantic.ValidationError: if content fails validation.
    """
    raw: dict[str, Any] = {}
    if path is not None:
        content = path.read_text(encoding="utf-8")
        if path.suffix.lower() == ".json":
            raw = json.loads(content)
        else:
            raw = yaml.safe_load(content) or {}

    storage = os.environ.get(STORAGE_ENV_VAR)
    if storage:
        raw["storage_location"] = storage

    return FeedSettings.model_validate(raw)


def find_settings() -> Path | None:
    """Find a settings file in the working directory.

    Returns:
        Path of the first existing candidate, or ``None``.
    """
    for name in ("nvdfeeds.yaml", "nvdfeeds.yml", "nvdfeeds.json"):
        if Path(name).exists():
            return Path(name)
    return None
