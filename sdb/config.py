"""Server configuration loaded from YAML."""

import dataclasses
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional, Union

import yaml

__all__ = [
    "StoreConfig",
    "ServerConfig",
    "ClusterConfig",
    "Config",
    "parse_config",
    "load_config",
    "DEFAULT_CONFIG_PATH",
]

DEFAULT_CONFIG_PATH = "configs/config.yml"


@dataclass
class StoreConfig:
    engine: str = ""
    path: str = ""


@dataclass
class ServerConfig:
    grpc_port: int = 0
    http_port: int = 0
    rate: int = 0


@dataclass
class ClusterConfig:
    node_id: int = 0
    path: str = ""
    address: str = ""
    master: str = ""
    timeout: int = 0
    join: bool = False


@dataclass
class Config:
    store: StoreConfig = field(default_factory=StoreConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    cluster: ClusterConfig = field(default_factory=ClusterConfig)


def _convert(section: str, name: str, kind: type, value: Any) -> Any:
    where = f"{section}.{name}"
    if kind is bool:
        if not isinstance(value, bool):
            raise ValueError(f"{where}: expected a boolean, got {value!r}")
        return value
    if kind is int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"{where}: expected an integer, got {value!r}")
        return value
    if isinstance(value, (dict, list)):
        raise ValueError(f"{where}: expected a string, got {value!r}")
    return str(value)


def _build(cls: type, section: str, data: Any) -> Any:
    if data is None:
        return cls()
    if not isinstance(data, Mapping):
        raise ValueError(f"{section}: expected a mapping, got {data!r}")
    values = {}
    for f in dataclasses.fields(cls):
        if data.get(f.name) is not None:
            values[f.name] = _convert(section, f.name, f.type, data[f.name])
    return cls(**values)


def parse_config(text: str) -> Config:
    """Parse YAML text into a :class:`Config`; unknown keys are ignored."""
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ValueError(f"unmarshal: {exc}") from exc
    if data is None:
        return Config()
    if not isinstance(data, Mapping):
        raise ValueError("configuration must be a mapping")
    config = Config(
        store=_build(StoreConfig, "store", data.get("store")),
        server=_build(ServerConfig, "server", data.get("server")),
        cluster=_build(ClusterConfig, "cluster", data.get("cluster")),
    )
    if config.cluster.node_id < 0:
        raise ValueError("cluster.node_id must not be negative")
    return config


def load_config(path: Optional[Union[str, Path]] = None) -> Config:
    """Read and parse the configuration file at ``path``."""
    file = Path(path if path is not None else DEFAULT_CONFIG_PATH)
    return parse_config(file.read_text(encoding="utf-8"))