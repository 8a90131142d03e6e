"""Tests for configuration system."""

import pytest

from ringfile.config import BufferConfig, Config, SystemConfig


def test_buffer_config_defaults():
    """BufferConfig has correct defaults."""
    config = BufferConfig()
    assert config.filename == "ring.dat"
    assert config.capacity == 1000
    assert config.record_length == 20
    assert config.sync_writes is False


def test_system_config_defaults():
    """SystemConfig has correct defaults."""
    config = SystemConfig()
    assert config.log_max_bytes == 5 * 1024 * 1024
    assert config.log_backup_count == 3


def test_config_paths(isolated_home):
    """Config provides XDG-style paths under the home directory."""
    config = Config()
    assert config.config_dir == isolated_home / ".config" / "ringfile"
    assert config.config_path.name == "config.toml"
    assert config.data_dir == isolated_home / ".local" / "share" / "ringfile"
    assert config.log_path == isolated_home / ".local" / "state" / "ringfile" / "ringfile.log"


def test_buffer_path_relative_resolves_under_data_dir():
    """A relative filename lives in data_dir."""
    config = Config()
    config.buffer.filename = "audit/events.ring"
    assert config.buffer_path == config.data_dir / "audit" / "events.ring"


def test_buffer_path_absolute_used_as_is(tmp_path):
    """An absolute filename is not rebased."""
    config = Config()
    config.buffer.filename = str(tmp_path / "elsewhere.dat")
    assert config.buffer_path == tmp_path / "elsewhere.dat"


def test_config_save_creates_file(tmp_path):
    """Config.save() creates config file and parent directories."""
    config_path = tmp_path / "nested" / "config.toml"
    Config().save(config_path)
    assert config_path.exists()


def test_config_save_default_location():
    """Config.save() without a path writes to config_path."""
    config = Config()
    config.save()
    assert config.config_path.exists()


def test_config_save_preserves_values(tmp_path):
    """Values written by save() come back from load()."""
    config_path = tmp_path / "config.toml"
    config = Config()
    config.buffer.capacity = 4711
    config.buffer.record_length = 64
    config.buffer.filename = "trail.dat"
    config.buffer.sync_writes = True
    config.system.log_backup_count = 7
    config.save(config_path)

    loaded = Config.load(config_path)
    assert loaded.buffer.capacity == 4711
    assert loaded.buffer.record_length == 64
    assert loaded.buffer.filename == "trail.dat"
    assert loaded.buffer.sync_writes is True
    assert loaded.system.log_backup_count == 7


def test_config_save_writes_sections(tmp_path):
    """Saved TOML has [buffer] and [system] tables."""
    config_path = tmp_path / "config.toml"
    Config().save(config_path)
    content = config_path.read_text()
    assert "[buffer]" in content
    assert "[system]" in content
    assert "record_length = 20" in content


def test_config_load_missing_file_returns_defaults(tmp_path):
    """Missing config file yields defaults."""
    config = Config.load(tmp_path / "nope.toml")
    assert config == Config()


def test_config_load_partial_uses_defaults(tmp_path):
    """Missing keys fall back to dataclass defaults."""
    config_path = tmp_path / "config.toml"
    config_path.write_text("[buffer]\ncapacity = 12\n")
    config = Config.load(config_path)
    assert config.buffer.capacity == 12
    assert config.buffer.record_length == 20
    assert config.system.log_backup_count == 3


def test_config_load_invalid_toml(tmp_path):
    """Unparsable TOML raises ValueError."""
    config_path = tmp_path / "config.toml"
    config_path.write_text("[buffer\ncapacity = ")
    with pytest.raises(ValueError, match="Failed to parse"):
        Config.load(config_path)


@pytest.mark.parametrize(
    "toml",
    [
        "[buffer]\ncapacity = -1\n",
        "[buffer]\nrecord_length = 0\n",
        '[buffer]\nfilename = ""\n',
        "[system]\nlog_backup_count = -2\n",
    ],
)
def test_config_load_invalid_values(tmp_path, toml):
    """Out-of-range values raise ValueError."""
    config_path = tmp_path / "config.toml"
    config_path.write_text(toml)
    with pytest.raises(ValueError):
        Config.load(config_path)
