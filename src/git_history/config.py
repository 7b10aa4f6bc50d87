from __future__ import annotations

import dataclasses
import json
from pathlib import Path
from typing import Optional

from .git import extract_repo_name_from_url

CONFIG_FILENAME = ".git-history.json"
_MAX_SEARCH_DEPTH = 20


class ConfigError(RuntimeError):
    pass


@dataclasses.dataclass(frozen=True)
class RepositoryConfig:
    path: str = ""
    name: str = ""
    url: str = ""
    archived: bool = False


@dataclasses.dataclass(frozen=True)
class Config:
    repositories: tuple[RepositoryConfig, ...] = ()
    clone_if_not_exists: bool = False
    pull_if_exists: bool = True
    no_archived: bool = False
    contributors_no_commits: bool = False
    contributors_format: str = "text"
    hist_resolve_branches: bool = True
    hist_jobs: int = 1
    config_dir: Optional[Path] = None

    def active_repositories(self) -> list[RepositoryConfig]:
        return [r for r in self.repositories if not (self.no_archived and r.archived)]


def find_config_file(start: Path) -> Optional[Path]:
    current = start.resolve()
    for _ in range(_MAX_SEARCH_DEPTH):
        candidate = current / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
        if current.parent == current:
            break
        current = current.parent
    return None


def load_config(config_path: Path) -> dict:
    if not config_path.exists():
        return {}
    return json.loads(config_path.read_text(encoding="utf-8"))


def _resolve_repository(raw: object, config_dir: Path) -> RepositoryConfig:
    if not isinstance(raw, dict):
        raise ConfigError(f"repository entries must be objects, got: {raw!r}")
    path = str(raw.get("path", "") or "").strip()
    url = str(raw.get("url", "") or "").strip()
    name = str(raw.get("name", "") or "").strip()
    if not path and url:
        repo_name = extract_repo_name_from_url(url)
        path = str(config_dir / repo_name)
        name = name or repo_name
    elif path:
        path = str((config_dir / path).resolve())
    return RepositoryConfig(path=path, name=name, url=url, archived=bool(raw.get("archived", False)))


def config_from_dict(data: dict, config_dir: Path) -> Config:
    if not isinstance(data, dict):
        raise ConfigError("config root must be a JSON object")
    contributors = data.get("contributors") if isinstance(data.get("contributors"), dict) else {}
    hist = data.get("hist") if isinstance(data.get("hist"), dict) else {}

    fmt = str(contributors.get("format", "text") or "text").strip().lower()
    if fmt not in ("text", "json"):
        raise ConfigError(f"invalid contributors.format {fmt!r} (expected 'text' or 'json')")
    try:
        jobs = int(hist.get("jobs", 1) or 1)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"invalid hist.jobs: {hist.get('jobs')!r}") from e

    repositories = tuple(_resolve_repository(r, config_dir) for r in list(data.get("repositories") or []))
    return Config(
        repositories=repositories,
        clone_if_not_exists=bool(data.get("clone_if_not_exists", False)),
        pull_if_exists=bool(data.get("pull_if_exists", True)),
        no_archived=bool(data.get("no_archived", False)),
        contributors_no_commits=bool(contributors.get("no_commits", False)),
        contributors_format=fmt,
        hist_resolve_branches=bool(hist.get("resolve_branches", True)),
        hist_jobs=max(1, jobs),
        config_dir=config_dir,
    )


def resolve_config(config_path: Optional[Path] = None, *, start: Optional[Path] = None) -> Config:
    """
    Load an explicit config file (errors are fatal) or discover the default
    one upward from `start` (absence is silent).
    """
    if config_path is not None:
        if not config_path.is_file():
            raise ConfigError(f"config file not found: {config_path.resolve()}")
        path = config_path.resolve()
    else:
        found = find_config_file(start or Path.cwd())
        if found is None:
            return Config()
        path = found

    try:
        data = load_config(path)
    except (OSError, ValueError) as e:
        raise ConfigError(f"failed to load config file {path}: {e}") from e
    return config_from_dict(data, path.parent)
