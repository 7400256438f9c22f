"""Typed configuration loading and access.

The optional ``playpub.toml`` file supplies API endpoints, credential lookup
and publishing defaults. Every value has a default, so a missing file is not
an error for callers that use :func:`load_config_or_default`.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_bool, get_float, get_str, get_table

__all__ = [
    "Config",
    "ApiConfig",
    "CredentialsConfig",
    "PublishConfig",
    "ConfigError",
    "CONFIG_FILE_NAME",
    "DEFAULT_API_BASE_URL",
    "DEFAULT_UPLOAD_BASE_URL",
    "DEFAULT_TOKEN_ENV",
    "load_config",
    "load_config_or_default",
]

CONFIG_FILE_NAME = "playpub.toml"

DEFAULT_API_BASE_URL = "https://www.googleapis.com/androidpublisher/v2/applications"
DEFAULT_UPLOAD_BASE_URL = "https://www.googleapis.com/upload/androidpublisher/v2/applications"
DEFAULT_TOKEN_ENV = "PLAYPUB_ACCESS_TOKEN"

# Plain requests (edits, tracks, listings)
DEFAULT_TIMEOUT_SECONDS = 60.0

# Binary uploads (APKs, expansion files)
DEFAULT_UPLOAD_TIMEOUT_SECONDS = 10 * 60.0


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class ApiConfig:
    base_url: str = DEFAULT_API_BASE_URL
    upload_base_url: str = DEFAULT_UPLOAD_BASE_URL
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    upload_timeout_seconds: float = DEFAULT_UPLOAD_TIMEOUT_SECONDS


@dataclass(frozen=True, slots=True)
class CredentialsConfig:
    """Where the OAuth access token comes from.

    The environment variable wins when it is set; ``use_gcloud`` falls back to
    ``gcloud auth print-access-token``.
    """

    token_env: str = DEFAULT_TOKEN_ENV
    use_gcloud: bool = False


@dataclass(frozen=True, slots=True)
class PublishConfig:
    """Defaults for ``playpub upload`` / ``playpub move`` options."""

    track: str | None = None
    rollout_percentage: str | None = None
    inherit_expansion_files: bool = False


@dataclass(frozen=True, slots=True)
class Config:
    """Main configuration container."""

    api: ApiConfig = field(default_factory=ApiConfig)
    credentials: CredentialsConfig = field(default_factory=CredentialsConfig)
    publish: PublishConfig = field(default_factory=PublishConfig)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Config:
        """Create Config from a mapping (parsed TOML)."""
        api: StrDict = get_table(data, "api") or {}
        credentials: StrDict = get_table(data, "credentials") or {}
        publish: StrDict = get_table(data, "publish") or {}

        # Percentages may be written as 50, 0.5 or "50%".
        raw_pct = publish.get("rollout_percentage")
        rollout_percentage: str | None
        if isinstance(raw_pct, (int, float)) and not isinstance(raw_pct, bool):
            rollout_percentage = f"{raw_pct:g}"
        else:
            rollout_percentage = get_str(publish, "rollout_percentage")

        timeout = get_float(api, "timeout_seconds")
        upload_timeout = get_float(api, "upload_timeout_seconds")
        if timeout is not None and timeout <= 0:
            raise ValueError("api.timeout_seconds must be positive")
        if upload_timeout is not None and upload_timeout <= 0:
            raise ValueError("api.upload_timeout_seconds must be positive")

        return cls(
            api=ApiConfig(
                base_url=(get_str(api, "base_url") or DEFAULT_API_BASE_URL).rstrip("/"),
                upload_base_url=(
                    get_str(api, "upload_base_url") or DEFAULT_UPLOAD_BASE_URL
                ).rstrip("/"),
                timeout_seconds=timeout or DEFAULT_TIMEOUT_SECONDS,
                upload_timeout_seconds=upload_timeout or DEFAULT_UPLOAD_TIMEOUT_SECONDS,
            ),
            credentials=CredentialsConfig(
                token_env=get_str(credentials, "token_env") or DEFAULT_TOKEN_ENV,
                use_gcloud=bool(get_bool(credentials, "use_gcloud")),
            ),
            publish=PublishConfig(
                track=get_str(publish, "track"),
                rollout_percentage=rollout_percentage,
                inherit_expansion_files=bool(get_bool(publish, "inherit_expansion_files")),
            ),
        )


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    """Parse a TOML file, handling read and parse errors."""
    import tomllib

    try:
        content = path.read_bytes()
        data_obj: object = tomllib.loads(content.decode("utf-8"))
        data = as_str_dict(data_obj)
        if data is None:
            return Err(ConfigError("Config root must be a TOML table", path=path))
        return Ok(data)
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))


def load_config(path: Path) -> Result[Config, ConfigError]:
    """Load and parse configuration from a TOML file.

    Args:
        path: Path to playpub.toml

    Returns:
        Ok(Config) on success, Err(ConfigError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    try:
        return Ok(Config.from_dict(result.value))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config structure: {e}", path=path))


def load_config_or_default(path: Path) -> Result[Config, ConfigError]:
    """Load config from file, or return the defaults if it does not exist.

    A file that exists but cannot be parsed is still an error.
    """
    if not path.exists():
        return Ok(Config())
    return load_config(path)
