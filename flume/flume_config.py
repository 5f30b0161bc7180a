"""
Interpreter settings: defaults, an optional YAML file, then environment overrides.
"""
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

ENV_DEBUG = "FLUME_DEBUG"
ENV_MAX_LOOP_ITERS = "FLUME_MAX_LOOP_ITERS"

_TRUTHY = ("1", "true", "yes", "on")


@dataclass(frozen=True)
class FlumeConfig:
    debug: bool = False
    # None leaves `loop` unbounded.
    max_loop_iterations: Optional[int] = None
    show_tokens: bool = False
    show_ast: bool = False
    color: bool = True

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> 'FlumeConfig':
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"unknown config keys: {', '.join(unknown)}")
        cfg = cls(**dict(data))
        cfg._validate()
        return cfg

    def _validate(self):
        for name in ("debug", "show_tokens", "show_ast", "color"):
            if not isinstance(getattr(self, name), bool):
                raise ValueError(f"config key '{name}' must be a boolean")
        limit = self.max_loop_iterations
        if limit is not None and (isinstance(limit, bool) or not isinstance(limit, int) or limit < 0):
            raise ValueError("config key 'max_loop_iterations' must be a non-negative integer")


def load_config(path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> FlumeConfig:
    """Builds a FlumeConfig from an optional YAML file and the environment."""
    cfg = FlumeConfig()
    if path is not None:
        text = Path(path).read_text(encoding="utf-8")
        try:
            data = yaml.safe_load(text) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"invalid config file {path}: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"config file {path} must contain a mapping")
        cfg = FlumeConfig.from_mapping(data)

    env = os.environ if environ is None else environ
    if env.get(ENV_DEBUG):
        cfg = replace(cfg, debug=env[ENV_DEBUG].strip().lower() in _TRUTHY)
    if env.get(ENV_MAX_LOOP_ITERS):
        try:
            limit = int(env[ENV_MAX_LOOP_ITERS])
        except ValueError:
            raise ValueError(f"{ENV_MAX_LOOP_ITERS} must be an integer") from None
        cfg = replace(cfg, max_loop_iterations=limit)
    cfg._validate()
    return cfg
