from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Literal, Optional, Union

import yaml
from platformdirs import user_data_dir
from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError
from .store import DEFAULT_NAMESPACE_PREFIX, JsonFileBackend, MemoryBackend, SqliteBackend, StoreBackend

logger = logging.getLogger(__name__)

APP_SLUG = "mediaman"
CONFIG_ENV = "MEDIAMAN_CONFIG"
DB_FILENAME = "mediaman.db"
JSON_DIRNAME = "collections"


def default_data_root() -> Path:
    return Path(user_data_dir(APP_SLUG, appauthor=False))


class StoreSettings(BaseModel):
    """Where and how collections are stored.

    Example YAML::

        backend: sqlite
        root: ~/media
        namespace_prefix: mediaman
    """

    backend: Literal["memory", "json", "sqlite"] = Field("json", description="Storage backend")
    root: Path = Field(default_factory=default_data_root, description="Directory holding stored data")
    namespace_prefix: str = Field(DEFAULT_NAMESPACE_PREFIX, min_length=1, description="Partition name prefix")

    @field_validator("root", mode="before")
    @classmethod
    def expand_user(cls, v: Union[str, Path]) -> Path:
        return Path(v).expanduser()


def load_settings(path: Optional[Union[str, Path]] = None) -> StoreSettings:
    """Load settings from YAML.

    If path is None, the file named by $MEDIAMAN_CONFIG is used, and when that
    is unset the defaults apply. A relative ``root`` is resolved against the
    config file's directory.
    """
    if path is None:
        env = os.environ.get(CONFIG_ENV, "").strip()
        if not env:
            logger.debug("No config file; using default store settings")
            return StoreSettings()
        path = env

    cfg_path = Path(path).expanduser()
    try:
        with cfg_path.open("r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except FileNotFoundError as e:
        raise ValidationError(f"Config file not found: {cfg_path}") from e
    except yaml.YAMLError as e:
        raise ValidationError(f"Invalid YAML in {cfg_path}: {e}") from e
    if not isinstance(raw, dict):
        raise ValidationError(f"Config file {cfg_path} must contain a mapping")

    try:
        settings = StoreSettings.model_validate(raw)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid settings in {cfg_path}: {e}") from e

    if "root" in raw and not settings.root.is_absolute():
        settings = settings.model_copy(update={"root": (cfg_path.parent / settings.root).resolve()})
    logger.info("Loaded store settings from %s | backend=%s root=%s", cfg_path, settings.backend, settings.root)
    return settings


def open_backend(settings: StoreSettings) -> StoreBackend:
    if settings.backend == "memory":
        return MemoryBackend()
    if settings.backend == "sqlite":
        return SqliteBackend(settings.root / DB_FILENAME)
    return JsonFileBackend(settings.root / JSON_DIRNAME)
