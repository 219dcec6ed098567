"""Slagboom configuration."""

from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class ServerConfig:
    """Server config."""

    host: str = "localhost"
    port: int = 8001
    ssl_key: Path | None = None
    ssl_cert: Path | None = None

    def __post_init__(self):
        assert 0 < self.port < 65536, "port out of range"


@dataclass
class GateConfig:
    """Authentication gate config."""

    realm: str = "Slagboom"
    skip: list[str] = field(default_factory=lambda: ["/_ping"])
    publish_headers: bool = True


@dataclass
class MainConfig:
    """Main program config.

    accounts: login = "passlib hash"
    """

    server: ServerConfig = field(default_factory=ServerConfig)
    gate: GateConfig = field(default_factory=GateConfig)
    accounts: dict[str, str] = field(default_factory=dict)
