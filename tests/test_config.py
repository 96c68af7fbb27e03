"""Tests for configuration management."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from site_icon_tool.config import (
    CacheConfig,
    Config,
    DiscoveryConfig,
    HTTPConfig,
    OutputConfig,
    ValidationConfig,
    _merge_configs,
    create_default_user_config,
    get_config_paths,
    load_config,
)
from site_icon_tool.constants import (
    COMMON_ICON_PATHS,
    DESKTOP_USER_AGENT,
    MOBILE_USER_AGENT,
)


@pytest.fixture
def isolated_home(tmp_path, monkeypatch):
    """Point home and the working directory at an empty temporary tree."""
    home = tmp_path / "home"
    work = tmp_path / "work"
    home.mkdir()
    work.mkdir()
    monkeypatch.setattr(Path, "home", classmethod(lambda cls: home))
    monkeypatch.chdir(work)
    return home


def test_http_config_defaults():
    """Test HTTP config has correct defaults."""
    config = HTTPConfig()
    assert config.timeout == 10.0
    assert config.max_redirects == 10


def test_blank_user_agent_falls_back():
    """Test blank user agents are replaced by the defaults."""
    discovery = DiscoveryConfig(desktop_user_agent="", mobile_user_agent="")
    assert discovery.desktop_user_agent == DESKTOP_USER_AGENT
    assert discovery.mobile_user_agent == MOBILE_USER_AGENT

    assert DiscoveryConfig(mobile_user_agent="Custom/1.0").mobile_user_agent == "Custom/1.0"


def test_discovery_config_defaults():
    """Test every discovery source is enabled by default."""
    config = DiscoveryConfig()
    assert config.timeout == 5.0
    assert config.check_html is True
    assert config.check_manifest is True
    assert config.check_browserconfig is True
    assert config.check_og_image is True


def test_validation_config_defaults():
    """Test validation config has correct defaults."""
    config = ValidationConfig()
    assert config.top_k == 5
    assert config.peek_bytes == 512
    assert config.fallback_paths == COMMON_ICON_PATHS
    assert config.fallback_paths is not COMMON_ICON_PATHS


def test_validation_config_bounds():
    """Test top_k and peek_bytes have lower bounds."""
    with pytest.raises(ValidationError):
        ValidationConfig(top_k=0)
    with pytest.raises(ValidationError):
        ValidationConfig(peek_bytes=4)


def test_cache_config_defaults():
    """Test cache config has correct defaults."""
    config = CacheConfig()
    assert config.capacity == 1000
    assert config.ttl_seconds == 3600
    assert config.expired_ttl_seconds == 3 * 24 * 3600
    assert config.single_flight_refresh is False


def test_main_config_defaults():
    """Test main Config has all sub-configs."""
    config = Config()
    assert isinstance(config.http, HTTPConfig)
    assert isinstance(config.discovery, DiscoveryConfig)
    assert isinstance(config.validation, ValidationConfig)
    assert isinstance(config.cache, CacheConfig)
    assert isinstance(config.output, OutputConfig)


def test_env_override(monkeypatch):
    """Test nested settings can be set from the environment."""
    monkeypatch.setenv("SITE_ICON_CACHE__TTL_SECONDS", "60")
    monkeypatch.setenv("SITE_ICON_VALIDATION__TOP_K", "2")

    config = Config()

    assert config.cache.ttl_seconds == 60
    assert config.validation.top_k == 2


def test_merge_configs_nested():
    """Test merging nested configs keeps untouched keys."""
    base = {"cache": {"capacity": 10, "ttl_seconds": 60}}
    override = {"cache": {"ttl_seconds": 120}, "output": {"color": False}}

    result = _merge_configs(base, override)

    assert result == {
        "cache": {"capacity": 10, "ttl_seconds": 120},
        "output": {"color": False},
    }
    assert base["cache"]["ttl_seconds"] == 60


def test_toml_round_trip():
    """Test export and import preserve values."""
    config = Config()
    config.cache.capacity = 42
    config.validation.fallback_paths = ["/only.png"]

    restored = Config.from_toml_string(config.to_toml())

    assert restored.cache.capacity == 42
    assert restored.validation.fallback_paths == ["/only.png"]


def test_load_config_default(isolated_home):
    """Test loading without any config file gives defaults."""
    assert get_config_paths() == []
    assert load_config().cache.capacity == 1000


def test_load_config_precedence(isolated_home, tmp_path):
    """Test the explicit file overrides the working directory file."""
    Path(".site-icon-tool.toml").write_text("[cache]\ncapacity = 5\nttl_seconds = 30\n")
    extra = tmp_path / "extra.toml"
    extra.write_text("[cache]\ncapacity = 7\n")

    config = load_config(extra)

    assert config.cache.capacity == 7
    assert config.cache.ttl_seconds == 30


def test_load_config_user_file(isolated_home):
    """Test ~/.config/site-icon-tool/config.toml is picked up."""
    user_dir = isolated_home / ".config" / "site-icon-tool"
    user_dir.mkdir(parents=True)
    (user_dir / "config.toml").write_text('[output]\nverbosity = "verbose"\n')

    assert load_config().output.verbosity == "verbose"


def test_load_config_skips_broken_file(isolated_home, tmp_path):
    """Test an unparsable file is skipped."""
    broken = tmp_path / "broken.toml"
    broken.write_text("this is [not toml")

    assert load_config(broken).cache.capacity == 1000


def test_create_default_user_config(isolated_home):
    """Test the default file is created once and reloadable."""
    path = create_default_user_config()

    assert path == isolated_home / ".config" / "site-icon-tool" / "config.toml"
    assert Config.from_toml_file(path).cache.capacity == 1000

    path.write_text("[cache]\ncapacity = 3\n")
    create_default_user_config()
    assert Config.from_toml_file(path).cache.capacity == 3

    create_default_user_config(force=True)
    assert Config.from_toml_file(path).cache.capacity == 1000
