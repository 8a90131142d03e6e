"""Configuration system for ringfile."""

from dataclasses import dataclass, field, fields, is_dataclass
from pathlib import Path

import tomlkit


@dataclass
class BufferConfig:
    """Ring buffer file configuration."""

    filename: str = "ring.dat"  # Relative names resolve under data_dir
    capacity: int = 1000  # Number of record slots
    record_length: int = 20  # Bytes per record
    sync_writes: bool = False  # fsync after every mutation


@dataclass
class SystemConfig:
    """Logging configuration."""

    log_max_bytes: int = 5 * 1024 * 1024  # Max log file size (5MB)
    log_backup_count: int = 3  # Number of backup log files to keep


def _dataclass_to_table(obj: object) -> tomlkit.items.Table:
    """Convert a dataclass instance to a tomlkit Table recursively."""
    table = tomlkit.table()
    for f in fields(obj):  # type: ignore[arg-type]
        value = getattr(obj, f.name)
        if is_dataclass(value) and not isinstance(value, type):
            table.add(f.name, _dataclass_to_table(value))
        else:
            table.add(f.name, value)
    return table


@dataclass
class Config:
    """Main configuration container."""

    buffer: BufferConfig = field(default_factory=BufferConfig)
    system: SystemConfig = field(default_factory=SystemConfig)

    @property
    def config_dir(self) -> Path:
        """Configuration directory."""
        return Path.home() / ".config" / "ringfile"

    @property
    def config_path(self) -> Path:
        """Path to config file."""
        return self.config_dir / "config.toml"

    @property
    def data_dir(self) -> Path:
        """Data directory."""
        return Path.home() / ".local" / "share" / "ringfile"

    @property
    def state_dir(self) -> Path:
        """State directory for logs."""
        return Path.home() / ".local" / "state" / "ringfile"

    @property
    def buffer_path(self) -> Path:
        """Ring buffer data file."""
        path = Path(self.buffer.filename).expanduser()
        if path.is_absolute():
            return path
        return self.data_dir / path

    @property
    def log_path(self) -> Path:
        """Log file path."""
        return self.state_dir / "ringfile.log"

    def save(self, path: Path | None = None) -> None:
        """Save config to TOML file."""
        path = path or self.config_path
        path.parent.mkdir(parents=True, exist_ok=True)

        doc = tomlkit.document()
        for name in ("buffer", "system"):
            doc.add(name, _dataclass_to_table(getattr(self, name)))
            doc.add(tomlkit.nl())

        path.write_text(tomlkit.dumps(doc))

    @classmethod
    def load(cls, path: Path | None = None) -> "Config":
        """Load config from TOML file, returning defaults for missing values.

        Raises:
            ValueError: If the file can't be parsed or holds invalid values
        """
        defaults = cls()
        path = path or defaults.config_path
        if not path.exists():
            return defaults

        try:
            with open(path) as f:
                data = tomlkit.load(f)
        except tomlkit.exceptions.TOMLKitError as e:
            raise ValueError(f"Failed to parse config file {path}: {e}") from e

        return cls(
            buffer=_load_buffer_config(data.get("buffer", {})),
            system=_load_system_config(data.get("system", {})),
        )


def _load_buffer_config(data: dict) -> BufferConfig:
    """Load buffer config from TOML data, using dataclass defaults for missing fields."""
    defaults = BufferConfig()

    filename = data.get("filename", defaults.filename)
    capacity = data.get("capacity", defaults.capacity)
    record_length = data.get("record_length", defaults.record_length)

    if not filename:
        raise ValueError("buffer.filename must not be empty")
    if capacity < 0:
        raise ValueError(f"capacity must be >= 0, got {capacity}")
    if record_length < 1:
        raise ValueError(f"record_length must be >= 1, got {record_length}")

    return BufferConfig(
        filename=str(filename),
        capacity=int(capacity),
        record_length=int(record_length),
        sync_writes=bool(data.get("sync_writes", defaults.sync_writes)),
    )


def _load_system_config(data: dict) -> SystemConfig:
    """Load system config from TOML data."""
    d = SystemConfig()
    log_backup_count = data.get("log_backup_count", d.log_backup_count)
    if log_backup_count < 0:
        raise ValueError(f"log_backup_count must be >= 0, got {log_backup_count}")
    return SystemConfig(
        log_max_bytes=data.get("log_max_bytes", d.log_max_bytes),
        log_backup_count=log_backup_count,
    )
