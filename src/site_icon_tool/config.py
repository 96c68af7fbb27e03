"""Configuration management for site-icon-tool."""

import logging
from pathlib import Path
from typing import Any

try:
    import tomllib  # Python 3.11+
except ImportError:
    import tomli as tomllib  # type: ignore

from pydantic import BaseModel, Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import (
    COMMON_ICON_PATHS,
    DEFAULT_CACHE_CAPACITY,
    DEFAULT_CACHE_TTL,
    DEFAULT_DISCOVERY_TIMEOUT,
    DEFAULT_EXPIRED_TTL,
    DEFAULT_HTTP_MAX_REDIRECTS,
    DEFAULT_HTTP_TIMEOUT,
    DEFAULT_PEEK_BYTES,
    DEFAULT_REFRESH_WORKERS,
    DEFAULT_VALIDATE_TOP_K,
    DEFAULT_VALIDATION_TIMEOUT,
    DESKTOP_USER_AGENT,
    MOBILE_USER_AGENT,
)

logger = logging.getLogger(__name__)

CONFIG_DIR_NAME = "site-icon-tool"
CONFIG_FILE_NAME = ".site-icon-tool.toml"


class HTTPConfig(BaseModel):
    """Icon download configuration."""

    timeout: float = Field(
        default=DEFAULT_HTTP_TIMEOUT, description="Icon download timeout in seconds"
    )
    max_redirects: int = Field(
        default=DEFAULT_HTTP_MAX_REDIRECTS, description="Maximum number of redirects to follow"
    )


class DiscoveryConfig(BaseModel):
    """Icon discovery configuration."""

    timeout: float = Field(
        default=DEFAULT_DISCOVERY_TIMEOUT,
        description="Timeout for document, manifest and browserconfig fetches in seconds",
    )
    desktop_user_agent: str = Field(
        default=DESKTOP_USER_AGENT, description="User agent used to fetch the root document"
    )
    mobile_user_agent: str = Field(
        default=MOBILE_USER_AGENT, description="User agent used to fetch web app manifests"
    )
    check_html: bool = Field(default=True, description="Parse the root document for icon links")
    check_manifest: bool = Field(default=True, description="Parse web app manifests for icons")
    check_browserconfig: bool = Field(
        default=True, description="Follow msapplication-config to browserconfig.xml"
    )
    check_og_image: bool = Field(
        default=True, description="Use og:image as a low priority fallback"
    )

    @field_validator("desktop_user_agent", "mobile_user_agent", mode="before")
    @classmethod
    def _default_browser_user_agent(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            if info.field_name == "mobile_user_agent":
                return MOBILE_USER_AGENT
            return DESKTOP_USER_AGENT
        return value


class ValidationConfig(BaseModel):
    """Icon validation configuration."""

    timeout: float = Field(
        default=DEFAULT_VALIDATION_TIMEOUT, description="Probe and peek timeout in seconds"
    )
    top_k: int = Field(
        default=DEFAULT_VALIDATE_TOP_K,
        ge=1,
        description="Number of best scored candidates to validate",
    )
    fallback_paths: list[str] = Field(
        default_factory=lambda: list(COMMON_ICON_PATHS),
        description="Common icon paths probed when no discovered candidate validates",
    )
    peek_bytes: int = Field(
        default=DEFAULT_PEEK_BYTES,
        ge=16,
        description="Bytes fetched to sniff the content of redirected icons",
    )


class CacheConfig(BaseModel):
    """Cache configuration."""

    capacity: int = Field(
        default=DEFAULT_CACHE_CAPACITY, ge=1, description="Maximum entries in the main tier"
    )
    ttl_seconds: int = Field(
        default=DEFAULT_CACHE_TTL,
        ge=1,
        description="Main tier time to live in seconds (idle timeout is twice this)",
    )
    expired_ttl_seconds: int = Field(
        default=DEFAULT_EXPIRED_TTL,
        ge=1,
        description="How long stale entries are kept as fallback in seconds",
    )
    refresh_workers: int = Field(
        default=DEFAULT_REFRESH_WORKERS, ge=1, description="Background refresh worker threads"
    )
    single_flight_refresh: bool = Field(
        default=False,
        description="Run at most one background refresh per cache key at a time",
    )


class OutputConfig(BaseModel):
    """Output configuration."""

    color: bool = Field(default=True, description="Enable colored output")
    verbosity: str = Field(
        default="normal",
        description="Verbosity level: quiet, normal, verbose, debug",
    )


class Config(BaseSettings):
    """Main configuration for site-icon-tool."""

    model_config = SettingsConfigDict(
        env_prefix="SITE_ICON_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    http: HTTPConfig = Field(default_factory=HTTPConfig)
    discovery: DiscoveryConfig = Field(default_factory=DiscoveryConfig)
    validation: ValidationConfig = Field(default_factory=ValidationConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)

    def to_toml(self) -> str:
        """
        Export configuration to TOML string.

        Returns:
            TOML formatted configuration string
        """
        import tomli_w

        config_dict = self.model_dump(mode="json")
        return tomli_w.dumps(config_dict)

    def to_toml_file(self, path: Path) -> None:
        """
        Export configuration to TOML file.

        Args:
            path: Path to save the TOML file
        """
        import tomli_w

        config_dict = self.model_dump(mode="json")
        with open(path, "wb") as f:
            tomli_w.dump(config_dict, f)
        logger.info(f"Exported config to: {path}")

    @classmethod
    def from_toml_string(cls, toml_string: str) -> "Config":
        """
        Import configuration from TOML string.

        Args:
            toml_string: TOML formatted configuration string

        Returns:
            Config object
        """
        config_data = tomllib.loads(toml_string)
        return cls(**config_data)

    @classmethod
    def from_toml_file(cls, path: Path) -> "Config":
        """
        Import configuration from TOML file.

        Args:
            path: Path to the TOML file

        Returns:
            Config object
        """
        with open(path, "rb") as f:
            config_data = tomllib.load(f)
        logger.info(f"Imported config from: {path}")
        return cls(**config_data)


def get_config_paths() -> list[Path]:
    """
    Get configuration file paths in order of precedence (lowest to highest).

    Returns:
        List of existing config file paths
    """
    paths = []

    # 1. Package default config
    package_dir = Path(__file__).parent
    default_config = package_dir / "default_config.toml"
    if default_config.exists():
        paths.append(default_config)

    # 2. System-wide config
    system_config = Path("/etc") / CONFIG_DIR_NAME / "config.toml"
    if system_config.exists():
        paths.append(system_config)

    # 3. User config in ~/.config
    user_config = Path.home() / ".config" / CONFIG_DIR_NAME / "config.toml"
    if user_config.exists():
        paths.append(user_config)

    # 4. User config in home directory
    home_config = Path.home() / CONFIG_FILE_NAME
    if home_config.exists():
        paths.append(home_config)

    # 5. Current directory config
    current_config = Path.cwd() / CONFIG_FILE_NAME
    if current_config.exists():
        paths.append(current_config)

    return paths


def load_config(extra_path: Path | None = None) -> Config:
    """
    Load configuration from files.

    Configuration is loaded in this order (later files override earlier):
    1. Package default config
    2. System-wide config (/etc/site-icon-tool/config.toml)
    3. User config (~/.config/site-icon-tool/config.toml)
    4. User home config (~/.site-icon-tool.toml)
    5. Current directory config (.site-icon-tool.toml)
    6. Explicit config file (extra_path)

    Environment variables (SITE_ICON_CACHE__TTL_SECONDS=60, ...) apply on top.

    Args:
        extra_path: Optional config file given on the command line

    Returns:
        Merged configuration
    """
    config_paths = get_config_paths()
    if extra_path is not None:
        config_paths.append(extra_path)

    config_data: dict[str, Any] = {}

    for config_path in config_paths:
        try:
            with open(config_path, "rb") as f:
                file_data = tomllib.load(f)
                config_data = _merge_configs(config_data, file_data)
                logger.debug(f"Loaded config from {config_path}")
        except Exception as e:
            logger.warning(f"Failed to load config from {config_path}: {e}")

    return Config(**config_data)


def _merge_configs(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Recursively merge two configuration dictionaries.

    Args:
        base: Base configuration
        override: Configuration to override base with

    Returns:
        Merged configuration
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _merge_configs(result[key], value)
        else:
            result[key] = value

    return result


def create_default_user_config(path: Path | None = None, force: bool = False) -> Path:
    """
    Create default user configuration file.

    Args:
        path: Target file (defaults to ~/.config/site-icon-tool/config.toml)
        force: Overwrite an existing file

    Returns:
        Path to the config file
    """
    config_path = path or Path.home() / ".config" / CONFIG_DIR_NAME / "config.toml"
    config_path.parent.mkdir(parents=True, exist_ok=True)

    if config_path.exists() and not force:
        logger.info(f"Config file already exists: {config_path}")
        return config_path

    Config().to_toml_file(config_path)
    logger.info(f"Created default config file: {config_path}")

    return config_path
