from __future__ import annotations

from .branches import resolve_all, resolve_commit_branches
from .contributors import aggregate_commits, aggregate_identities, aggregate_summary, dedupe_by_email
from .extract import Client, get_contributors, get_history
from .identity import AliasMap, parse_alias_rules
from .log_parse import parse_log_text
from .models import Commit, Contributor, FileChange, RepoContributors, RepoFailure, RepoHistory

__version__ = "0.1.0"

__all__ = [
    "AliasMap",
    "Client",
    "Commit",
    "Contributor",
    "FileChange",
    "RepoContributors",
    "RepoFailure",
    "RepoHistory",
    "aggregate_commits",
    "aggregate_identities",
    "aggregate_summary",
    "dedupe_by_email",
    "get_contributors",
    "get_history",
    "parse_alias_rules",
    "parse_log_text",
    "resolve_all",
    "resolve_commit_branches",
]
