from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional


ENV_PREFIX = "NEGACHESS_"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class SearchConfig:
    depth: int = 4
    movetime_ms: Optional[int] = None  # None means depth-only
    tt_capacity: int = 1_000_000  # transposition table slots


@dataclass
class ServerConfig:
    host: str = "127.0.0.1"
    port: int = 8000


@dataclass
class AppConfig:
    search: SearchConfig = field(default_factory=SearchConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "AppConfig":
        """Build a config from ``NEGACHESS_*`` variables over the defaults.

        Raises:
            ValueError: If a variable is set to a malformed or out-of-range
                value; the message names the variable.
        """
        env = os.environ if environ is None else environ
        cfg = cls()
        depth = _positive_int(env, "DEPTH")
        if depth is not None:
            cfg.search.depth = depth
        movetime = _positive_int(env, "MOVETIME_MS")
        if movetime is not None:
            cfg.search.movetime_ms = movetime
        capacity = _positive_int(env, "TT_CAPACITY")
        if capacity is not None:
            cfg.search.tt_capacity = capacity
        host = env.get(ENV_PREFIX + "HOST")
        if host:
            cfg.server.host = host
        port = _positive_int(env, "PORT")
        if port is not None:
            if port > 65535:
                raise ValueError(f"{ENV_PREFIX}PORT must be at most 65535, got {port}")
            cfg.server.port = port
        level = env.get(ENV_PREFIX + "LOG_LEVEL")
        if level:
            if level.upper() not in LOG_LEVELS:
                raise ValueError(f"{ENV_PREFIX}LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}")
            cfg.log_level = level.upper()
        return cfg


def _positive_int(env: Mapping[str, str], name: str) -> Optional[int]:
    key = ENV_PREFIX + name
    raw = env.get(key)
    if raw is None or raw == "":
        return None
    try:
        value = int(raw)
    except ValueError as e:
        raise ValueError(f"{key} must be an integer, got {raw!r}") from e
    if value <= 0:
        raise ValueError(f"{key} must be positive, got {value}")
    return value
