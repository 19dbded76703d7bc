"""Configuration system for tuitop."""

import logging
from dataclasses import dataclass, field, fields, is_dataclass
from pathlib import Path

import tomlkit


@dataclass
class SamplingConfig:
    """Background sampling configuration."""

    interval: float = 1.0  # Seconds between sampling cycles


@dataclass
class UIConfig:
    """Event loop configuration."""

    refresh_interval: float = 0.05  # Seconds between drain-and-render ticks


@dataclass
class LoggingConfig:
    """Log file configuration."""

    level: str = "INFO"
    max_bytes: int = 1_048_576
    backup_count: int = 3


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

    sampling: SamplingConfig = field(default_factory=SamplingConfig)
    ui: UIConfig = field(default_factory=UIConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def config_dir(self) -> Path:
        """Configuration directory."""
        return Path.home() / ".config" / "tuitop"

    @property
    def config_path(self) -> Path:
        """Path to config file."""
        return self.config_dir / "config.toml"

    @property
    def data_dir(self) -> Path:
        """Data directory."""
        return Path.home() / ".local" / "share" / "tuitop"

    @property
    def log_path(self) -> Path:
        """Log file path."""
        return self.data_dir / "tuitop.log"

    def save(self, path: Path | None = None) -> None:
        """Save config to TOML file."""
        path = path or self.config_path
        path.parent.mkdir(parents=True, exist_ok=True)

        doc = tomlkit.document()
        for name in ("sampling", "ui", "logging"):
            doc.add(name, _dataclass_to_table(getattr(self, name)))
            doc.add(tomlkit.nl())

        path.write_text(tomlkit.dumps(doc))

    @classmethod
    def load(cls, path: Path | None = None) -> "Config":
        """Load config from TOML file, returning defaults for missing values."""
        defaults = cls()
        path = path or defaults.config_path
        if not path.exists():
            return defaults

        try:
            with open(path) as f:
                data = tomlkit.load(f).unwrap()
        except tomlkit.exceptions.TOMLKitError as e:
            raise ValueError(f"Failed to parse config file {path}: {e}") from e

        return cls(
            sampling=_load_sampling_config(data.get("sampling", {})),
            ui=_load_ui_config(data.get("ui", {})),
            logging=_load_logging_config(data.get("logging", {})),
        )


def _positive(name: str, value: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ValueError(f"Invalid {name}: {value!r}. Must be a positive number")
    return float(value)


def _non_negative_int(name: str, value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"Invalid {name}: {value!r}. Must be a non-negative integer")
    return int(value)


def _load_sampling_config(data: dict) -> SamplingConfig:
    """Load sampling config from TOML data."""
    d = SamplingConfig()
    return SamplingConfig(
        interval=_positive("sampling.interval", data.get("interval", d.interval)),
    )


def _load_ui_config(data: dict) -> UIConfig:
    """Load UI config from TOML data."""
    d = UIConfig()
    return UIConfig(
        refresh_interval=_positive(
            "ui.refresh_interval", data.get("refresh_interval", d.refresh_interval)
        ),
    )


def _load_logging_config(data: dict) -> LoggingConfig:
    """Load logging config from TOML data, validating the level name."""
    d = LoggingConfig()
    level = str(data.get("level", d.level)).upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ValueError(f"Invalid logging.level: {level!r}")

    return LoggingConfig(
        level=level,
        max_bytes=_non_negative_int("logging.max_bytes", data.get("max_bytes", d.max_bytes)),
        backup_count=_non_negative_int(
            "logging.backup_count", data.get("backup_count", d.backup_count)
        ),
    )
