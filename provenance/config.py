# provenance/config.py
"""
Registry configuration.

Loaded from YAML:

    data_dir: ./registry-data   # omit or null for an in-memory registry
    host: 127.0.0.1
    port: 8080
    log_level: INFO
"""

import logging
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class RegistryConfig:
    """
    Settings for a registry process.

    Attributes:
        data_dir: Directory holding the persisted tables (None: in memory)
        host: Address the HTTP server binds to
        port: Port the HTTP server binds to (0: any free port)
        log_level: Name of the logging level
    """
    data_dir: Optional[str] = None
    host: str = "127.0.0.1"
    port: int = 8080
    log_level: str = "INFO"

    def __post_init__(self):
        if self.data_dir is not None and not isinstance(self.data_dir, (str, Path)):
            raise ValueError(f"data_dir must be a path, got {self.data_dir!r}")
        if self.data_dir is not None:
            self.data_dir = str(self.data_dir)
        if not isinstance(self.host, str) or not self.host:
            raise ValueError(f"host must be a non-empty string, got {self.host!r}")
        if isinstance(self.port, bool) or not isinstance(self.port, int) or not 0 <= self.port <= 65535:
            raise ValueError(f"port must be an integer in 0-65535, got {self.port!r}")
        if not isinstance(self.log_level, str) or self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}, got {self.log_level!r}")
        self.log_level = self.log_level.upper()

    @property
    def level(self) -> int:
        """log_level as a logging constant."""
        return getattr(logging, self.log_level)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def override(self, **changes: Any) -> "RegistryConfig":
        """Copy with the given non-None values replaced (CLI flags win)."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RegistryConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown config keys: {', '.join(unknown)}")
        return cls(**data)

    @classmethod
    def from_yaml(cls, yaml_content: str) -> "RegistryConfig":
        """Parse config from YAML string. Empty content gives the defaults."""
        data = yaml.safe_load(yaml_content) or {}
        if not isinstance(data, dict):
            raise ValueError("Registry config must be a YAML mapping")
        return cls.from_dict(data)

    @classmethod
    def from_file(cls, path: Path | str) -> "RegistryConfig":
        """Load config from YAML file."""
        with open(path, "r") as f:
            return cls.from_yaml(f.read())
