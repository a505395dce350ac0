"""Configuration loading for labdocs (.labdocs.yml)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import yaml

from .discovery import MODES, DiscoveryOptions
from .errors import LabdocsError
from .git.gitlab import GitLabSource
from .stores import CheckpointStore, FileCheckpoint
from .writer import Renderer, WriterOptions

CONFIG_FILENAME = ".labdocs.yml"

_HOST_ENV = ("LABDOCS_GITLAB_HOST", "GITLAB_HOST", "CI_SERVER_URL")
_TOKEN_ENV = ("LABDOCS_GITLAB_TOKEN", "GITLAB_TOKEN", "CI_JOB_TOKEN")
_TOKEN_TYPES = ("private", "oauth", "job")


class ConfigError(LabdocsError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class GitLabConfig:
    """Connection settings for the GitLab API."""

    host: Optional[str] = None
    token: Optional[str] = None
    token_type: str = "private"
    timeout: float = 30.0
    max_retries: int = 10
    verify: bool = True


@dataclass
class SourceConfig:
    """Where and how files are discovered."""

    repository: Optional[str] = None
    branch: str = "master"
    cwd: str = "."
    pattern: List[str] = field(default_factory=lambda: ["**"])
    ignore: List[str] = field(default_factory=list)
    triggers: Dict[str, List[str]] = field(default_factory=dict)
    triggers_cwd: Optional[str] = None
    mode: str = "glob"


@dataclass
class CheckpointConfig:
    """Location of the JSON checkpoint file."""

    path: Path = Path(".labdocs/checkpoint.json")
    key: Optional[str] = None


@dataclass
class OutputConfig:
    """Destination of rendered documents."""

    repository: Optional[str] = None
    branch: str = "master"
    cwd: str = "dist"
    author_name: str = "anonymous"
    author_email: str = "anonymous@example.com"
    message: str = "Not provided"
    templates_dir: Optional[Path] = None


@dataclass
class LabdocsConfig:
    """Represents the settings defined in .labdocs.yml."""

    root: Path
    gitlab: GitLabConfig = field(default_factory=GitLabConfig)
    source: SourceConfig = field(default_factory=SourceConfig)
    checkpoint: CheckpointConfig = field(default_factory=CheckpointConfig)
    output: OutputConfig = field(default_factory=OutputConfig)


def load_config(config_path: Path, environ: Optional[Mapping[str, str]] = None) -> LabdocsConfig:
    """Load configuration from disk and apply environment overrides."""
    env = os.environ if environ is None else environ
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    data: Dict[str, Any] = {}
    if config_file.exists():
        data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    config = LabdocsConfig(root=root)
    _load_gitlab(config.gitlab, _as_dict(data.get("gitlab")))
    _load_source(config.source, _as_dict(data.get("source")))
    _load_checkpoint(config.checkpoint, _as_dict(data.get("checkpoint")), root)
    _load_output(config.output, _as_dict(data.get("output")), root)
    _apply_env(config.gitlab, env)
    return config


# ----------------------------------------------------------------------
# Builders


def build_source(config: LabdocsConfig) -> GitLabSource:
    gitlab = config.gitlab
    return GitLabSource(
        host=gitlab.host,
        token=gitlab.token,
        token_type=gitlab.token_type,  # type: ignore[arg-type]
        timeout=gitlab.timeout,
        max_retries=gitlab.max_retries,
        verify=gitlab.verify,
    )


def build_checkpoint(config: LabdocsConfig) -> FileCheckpoint:
    key = config.checkpoint.key
    if not key:
        key = f"{config.source.repository or ''}@{config.source.branch}"
    return FileCheckpoint(config.checkpoint.path, key=key)


def build_discovery_options(
    config: LabdocsConfig, storage: Optional[CheckpointStore] = None
) -> DiscoveryOptions:
    source = config.source
    if not source.repository:
        raise ConfigError("source.repository is required")
    return DiscoveryOptions(
        repository=source.repository,
        branch=source.branch,
        cwd=source.cwd,
        pattern=list(source.pattern),
        ignore=list(source.ignore) or None,
        storage=storage,
        triggers=dict(source.triggers),
        triggers_cwd=source.triggers_cwd,
    )


def build_writer_options(config: LabdocsConfig, renderer: Renderer) -> WriterOptions:
    output = config.output
    repository = output.repository or config.source.repository
    if not repository:
        raise ConfigError("output.repository or source.repository is required")
    return WriterOptions(
        repository=repository,
        renderer=renderer,
        branch=output.branch,
        cwd=output.cwd,
        author_name=output.author_name,
        author_email=output.author_email,
        message=output.message,
        host=config.gitlab.host,
    )


# ----------------------------------------------------------------------
# Sections


def _load_gitlab(gitlab: GitLabConfig, data: Dict[str, Any]) -> None:
    gitlab.host = _as_str(data.get("host")) or gitlab.host
    gitlab.token = _as_str(data.get("token")) or gitlab.token
    token_type = _as_str(data.get("token_type"))
    if token_type is not None:
        if token_type not in _TOKEN_TYPES:
            raise ConfigError(f"gitlab.token_type must be one of {', '.join(_TOKEN_TYPES)}")
        gitlab.token_type = token_type
    timeout = _as_float(data.get("timeout"))
    if timeout is not None:
        gitlab.timeout = timeout
    max_retries = _as_int(data.get("max_retries"))
    if max_retries is not None:
        gitlab.max_retries = max_retries
    verify = _as_bool(data.get("verify"))
    if verify is not None:
        gitlab.verify = verify


def _load_source(source: SourceConfig, data: Dict[str, Any]) -> None:
    source.repository = _as_str(data.get("repository")) or source.repository
    source.branch = _as_str(data.get("branch")) or source.branch
    source.cwd = _as_str(data.get("cwd")) or source.cwd
    pattern = _as_str_list(data.get("pattern"))
    if pattern:
        source.pattern = pattern
    source.ignore = _as_str_list(data.get("ignore"))
    source.triggers = {
        str(key): _as_str_list(value)
        for key, value in _as_dict(data.get("triggers")).items()
        if _as_str_list(value)
    }
    source.triggers_cwd = _as_str(data.get("triggers_cwd"))
    mode = _as_str(data.get("mode"))
    if mode is not None:
        if mode not in MODES:
            raise ConfigError(f"source.mode must be one of {', '.join(MODES)}")
        source.mode = mode


def _load_checkpoint(checkpoint: CheckpointConfig, data: Dict[str, Any], root: Path) -> None:
    path = _as_str(data.get("path"))
    checkpoint.path = root / (path or checkpoint.path)
    checkpoint.key = _as_str(data.get("key"))


def _load_output(output: OutputConfig, data: Dict[str, Any], root: Path) -> None:
    output.repository = _as_str(data.get("repository"))
    output.branch = _as_str(data.get("branch")) or output.branch
    output.cwd = _as_str(data.get("cwd")) or output.cwd
    author = _as_dict(data.get("author"))
    output.author_name = _as_str(author.get("name")) or output.author_name
    output.author_email = _as_str(author.get("email")) or output.author_email
    output.message = _as_str(data.get("message")) or output.message
    templates_dir = _as_str(data.get("templates_dir"))
    output.templates_dir = root / templates_dir if templates_dir else None


def _apply_env(gitlab: GitLabConfig, env: Mapping[str, str]) -> None:
    host = _first_env(env, _HOST_ENV)
    if host:
        gitlab.host = host
    for name in _TOKEN_ENV:
        token = env.get(name)
        if token:
            gitlab.token = token
            if name == "CI_JOB_TOKEN":
                gitlab.token_type = "job"
            break


def _first_env(env: Mapping[str, str], names: Sequence[str]) -> Optional[str]:
    for name in names:
        value = env.get(name)
        if value:
            return value
    return None


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded if loaded is not None else {}


# ----------------------------------------------------------------------
# Coercion helpers


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []


__all__ = [
    "CONFIG_FILENAME",
    "CheckpointConfig",
    "ConfigError",
    "GitLabConfig",
    "LabdocsConfig",
    "OutputConfig",
    "SourceConfig",
    "build_checkpoint",
    "build_discovery_options",
    "build_source",
    "build_writer_options",
    "load_config",
]
