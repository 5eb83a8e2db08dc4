import argparse
import os
from dataclasses import dataclass, fields, replace
from typing import Mapping, Optional, Sequence

HOST = "127.0.0.1"
PORT = 6379
BUFFER_SIZE = 1024
MAX_BUFFER_SIZE = 64 * 1024
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

ENV_PREFIX = "PYRESP_"


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class ServerConfig:
    host: str = HOST
    port: int = PORT
    buffer_size: int = BUFFER_SIZE
    max_buffer_size: int = MAX_BUFFER_SIZE
    max_connections: Optional[int] = None
    log_level: str = "INFO"

    def __post_init__(self):
        if not 0 <= self.port <= 65535:
            raise ConfigError(f"port out of range: {self.port}")
        if self.buffer_size <= 0:
            raise ConfigError(f"buffer_size must be positive, got {self.buffer_size}")
        if self.max_buffer_size < self.buffer_size:
            raise ConfigError("max_buffer_size must be at least buffer_size")
        if self.max_connections is not None and self.max_connections <= 0:
            raise ConfigError(f"max_connections must be positive, got {self.max_connections}")
        if self.log_level.upper() not in LOG_LEVELS:
            raise ConfigError(f"unknown log level: {self.log_level}")
        object.__setattr__(self, "log_level", self.log_level.upper())

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ServerConfig":
        """Build a config from PYRESP_* environment variables over the defaults."""
        environ = os.environ if environ is None else environ
        overrides = {}
        for f in fields(cls):
            raw = environ.get(ENV_PREFIX + f.name.upper())
            if raw is None or raw == "":
                continue
            overrides[f.name] = raw if f.name in ("host", "log_level") else _to_int(f.name, raw)
        return cls(**overrides)


def _to_int(name: str, raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pyresp", description="Minimal RESP server answering PING.")
    parser.add_argument("--host", help=f"address to bind (default {HOST})")
    parser.add_argument("--port", type=int, help=f"port to bind (default {PORT})")
    parser.add_argument("--buffer-size", type=int, help="bytes requested per socket read")
    parser.add_argument("--max-buffer-size", type=int, help="largest incomplete frame kept per connection")
    parser.add_argument("--max-connections", type=int, help="concurrent connections served (default unbounded)")
    parser.add_argument("--log-level", choices=LOG_LEVELS, type=str.upper)
    return parser


def parse_args(argv: Optional[Sequence[str]] = None, environ: Optional[Mapping[str, str]] = None) -> ServerConfig:
    """Resolve the config from defaults, then environment, then command line."""
    config = ServerConfig.from_env(environ)
    args = build_parser().parse_args(argv)
    overrides = {name: value for name, value in vars(args).items() if value is not None}
    return replace(config, **overrides)
