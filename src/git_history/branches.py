from __future__ import annotations

import dataclasses
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Iterable, Optional, Sequence

from .log_parse import DEFAULT_REMOTES, strip_remote_prefix
from .models import Commit

ContainsQuery = Callable[[str], Sequence[str]]


@dataclasses.dataclass(frozen=True)
class BranchResolution:
    hash: str
    branches: frozenset[str] = frozenset()
    error: str = ""

    @property
    def ok(self) -> bool:
        return not self.error


def normalize_ref(raw: str, remotes: Iterable[str] = DEFAULT_REMOTES) -> Optional[str]:
    """
    Reduce one line of `git branch -a --contains` output to a bare branch name.

    Returns None for entries that do not name a branch (HEAD, symbolic refs,
    detached-HEAD markers).
    """
    s = raw.strip()
    # "*" marks the current branch, "+" a branch checked out in another worktree.
    if s[:1] in ("*", "+"):
        s = s[1:].strip()
    if not s or s.startswith("("):
        return None
    if " -> " in s:
        return None
    name = strip_remote_prefix(s, remotes)
    if not name or name == "HEAD" or name.endswith("/HEAD"):
        return None
    return name


def resolve_commit_branches(
    commit: Commit,
    contains: ContainsQuery,
    remotes: Iterable[str] = DEFAULT_REMOTES,
) -> BranchResolution:
    try:
        raw_refs = list(contains(commit.hash))
    except Exception as e:
        return BranchResolution(hash=commit.hash, error=f"branch lookup failed for {commit.hash}: {e}")

    remote_names = frozenset(remotes)
    names: set[str] = set()
    for raw in raw_refs:
        name = normalize_ref(str(raw), remote_names)
        if name:
            names.add(name)
    return BranchResolution(hash=commit.hash, branches=frozenset(names))


def apply_resolution(commit: Commit, resolution: BranchResolution) -> None:
    if resolution.hash != commit.hash or not resolution.ok:
        return
    commit.branches |= resolution.branches


def resolve_all(
    commits: list[Commit],
    contains: ContainsQuery,
    *,
    jobs: int = 1,
    remotes: Iterable[str] = DEFAULT_REMOTES,
) -> list[str]:
    """Populate `branches` for every commit; returns warnings for failed lookups."""
    remote_names = frozenset(remotes)
    by_hash = {c.hash: c for c in commits}
    warnings: list[str] = []

    def apply(resolution: BranchResolution) -> None:
        if not resolution.ok:
            warnings.append(resolution.error)
            return
        commit = by_hash.get(resolution.hash)
        if commit is not None:
            apply_resolution(commit, resolution)

    if jobs <= 1 or len(commits) <= 1:
        for c in commits:
            apply(resolve_commit_branches(c, contains, remote_names))
        return warnings

    with ThreadPoolExecutor(max_workers=jobs) as ex:
        futs = [ex.submit(resolve_commit_branches, c, contains, remote_names) for c in commits]
        for fut in as_completed(futs):
            apply(fut.result())
    return warnings
