"""
Settings from an optional YAML config file, overridden by the command line.

Example iai-parse.yml:

    input:
      - target/iai/output.txt
    git_revs:
      - main..HEAD
    git_repo: .
    output: results.csv
"""

from __future__ import annotations

import argparse
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .errors import ConfigError

DEFAULT_CONFIG = Path("iai-parse.yml")

KEYS = {"input", "git_revs", "git_repo", "output", "stream"}


@dataclass
class Settings:
    input:    list[Path] = field(default_factory=list)
    git_revs: list[str]  = field(default_factory=list)
    git_repo: Path | None = None
    output:   Path | None = None
    stream:   bool = False


def load_config(path: Path) -> dict:
    """Read and check a config file. An empty file is an empty config."""
    try:
        cfg = yaml.safe_load(path.read_bytes())
    except OSError as error:
        raise ConfigError(f"Failed to read {path}: {error.strerror}") from error
    except yaml.YAMLError as error:
        raise ConfigError(f"Invalid YAML in {path}: {error}") from error

    if cfg is None:
        return {}
    if not isinstance(cfg, dict):
        raise ConfigError(f"{path}: expected a mapping at the top level")
    unknown = set(cfg) - KEYS
    if unknown:
        raise ConfigError(f"{path}: unknown key(s) {', '.join(sorted(map(str, unknown)))}")
    return cfg


def _string_list(cfg: dict, key: str) -> list[str]:
    value = cfg.get(key, [])
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"{key} must be a string or a list of strings")
    return value


def _optional_path(cfg: dict, key: str) -> Path | None:
    value = cfg.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigError(f"{key} must be a path")
    return Path(value)


def settings_from_config(cfg: dict) -> Settings:
    stream = cfg.get("stream", False)
    if not isinstance(stream, bool):
        raise ConfigError("stream must be true or false")
    return Settings(
        input    = [Path(p) for p in _string_list(cfg, "input")],
        git_revs = _string_list(cfg, "git_revs"),
        git_repo = _optional_path(cfg, "git_repo"),
        output   = _optional_path(cfg, "output"),
        stream   = stream,
    )


def resolve_settings(args: argparse.Namespace) -> Settings:
    """Merge the config file (if any) with parsed command-line arguments."""
    if args.config is not None:
        cfg = load_config(args.config)
    elif DEFAULT_CONFIG.is_file():
        cfg = load_config(DEFAULT_CONFIG)
    else:
        cfg = {}

    settings = settings_from_config(cfg)
    if args.input:
        settings.input = list(args.input)
    if args.git_revs:
        settings.git_revs = list(args.git_revs)
    if args.git_repo is not None:
        settings.git_repo = args.git_repo
    if args.output is not None:
        settings.output = args.output
    settings.stream = settings.stream or args.stream

    if settings.stream and settings.git_revs:
        raise ConfigError("--stream can't be combined with git revisions")
    return settings
