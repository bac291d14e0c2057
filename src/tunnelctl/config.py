"""Per-invocation configuration for tunnel commands.

Every command builds its options model once from the parsed command line and
passes it down. The models are frozen.
"""

import uuid
from datetime import datetime
from enum import Enum
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from .exceptions import ValidationError
from .logging import get_logger
from .sorting import DEFAULT_CONNECTOR_SORT_FIELD, DEFAULT_TUNNEL_SORT_FIELD
from .utils import expand_path

logger = get_logger(__name__)

DEFAULT_CREDENTIALS_DIR = "~/.tunnelctl"
DEFAULT_STATE_FILE = "~/.tunnelctl/state.json"


class TransportProtocol(str, Enum):
    """Transport used by a connector to reach the edge."""

    AUTO = "auto"
    HTTP2 = "http2"
    QUIC = "quic"


class TunnelCtlSettings(BaseModel):
    """Settings shared by all tunnel commands."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True, extra="forbid")

    state_file: str = Field(
        default=DEFAULT_STATE_FILE, description="Local control-plane state snapshot"
    )
    credentials_dir: str = Field(
        default=DEFAULT_CREDENTIALS_DIR,
        description="Directory for credentials files named <tunnel-id>.json",
    )
    config_file: str | None = Field(default=None, description="YAML config file")
    log_level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    log_json: bool = False
    log_file: str | None = None

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v


class CreateOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    output: str = ""
    credentials_file: str | None = None


class ListOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    output: str = ""
    show_deleted: bool = False
    name: str | None = None
    when: datetime | None = None
    id: str | None = None
    show_recently_disconnected: bool = False
    sort_by: str = DEFAULT_TUNNEL_SORT_FIELD.value
    invert_sort: bool = False

    def tunnel_id(self) -> uuid.UUID | None:
        """Parse the ``id`` option.

        Raises:
            ValidationError: If ``id`` is set but is not a UUID
        """
        if not self.id:
            return None
        try:
            return uuid.UUID(self.id)
        except ValueError as e:
            raise ValidationError(f"{self.id} is not a valid tunnel ID") from e


class InfoOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    output: str = ""
    show_recently_disconnected: bool = False
    sort_by: str = DEFAULT_CONNECTOR_SORT_FIELD.value
    invert_sort: bool = False


class DeleteOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    credentials_file: str | None = None
    force: bool = False


class RunOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    force: bool = False
    credentials_file: str | None = None
    protocol: TransportProtocol = TransportProtocol.AUTO
    features: tuple[str, ...] = ()


class CleanupOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    connector_id: uuid.UUID | None = None


class RouteOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    overwrite_dns: bool = False


class FileConfig(BaseModel):
    """Values read from the YAML configuration file."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    tunnel: str | None = None
    credentials_file: str | None = Field(default=None, alias="credentials-file")


def load_file_config(path: str | None) -> FileConfig:
    """Load the YAML configuration file.

    A missing path yields an empty configuration.

    Args:
        path: Path to the YAML file, or None

    Returns:
        Parsed configuration

    Raises:
        ValidationError: If the file is not valid YAML, not a mapping
            or holds a value of the wrong type
    """
    if not path:
        return FileConfig()

    config_path = Path(expand_path(path))
    if not config_path.exists():
        logger.debug("Config file not found", path=str(config_path))
        return FileConfig()

    try:
        with config_path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ValidationError(f"{config_path} is not valid YAML: {e}") from e

    if not isinstance(data, dict):
        raise ValidationError(f"{config_path} must contain a mapping")

    tunnel = data.get("tunnel")
    if tunnel is not None:
        data["tunnel"] = str(tunnel)

    try:
        config = FileConfig.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(f"{config_path} has invalid settings: {e}") from e

    logger.debug("Loaded config file", path=str(config_path))
    return config
