from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

from . import git
from .branches import resolve_all
from .config import Config
from .contributors import aggregate_identities, aggregate_summary, parse_identity_log, parse_shortlog
from .identity import AliasMap, load_alias_map
from .log_parse import DEFAULT_REMOTES, parse_log_text
from .models import RepoContributors, RepoFailure, RepoHistory


def repo_alias_map(repo: Path) -> AliasMap:
    return load_alias_map(lambda: git.raw_alias_file_text(repo))


def get_history(
    repo: Path,
    since: Optional[str] = None,
    until: Optional[str] = None,
    *,
    resolve_branches: bool = True,
    jobs: int = 1,
    all_refs: bool = False,
    include_merges: bool = True,
) -> RepoHistory:
    if not git.has_commits(repo, all_refs=all_refs):
        return RepoHistory(path=str(repo), commits=[])
    aliases = repo_alias_map(repo)
    text = git.raw_log_text(
        repo,
        since,
        until,
        use_mailmap=bool(aliases),
        all_refs=all_refs,
        include_merges=include_merges,
    )
    remotes = set(DEFAULT_REMOTES) | set(git.get_remote_names(repo))
    commits = parse_log_text(text, canonicalize=aliases.canonicalize if aliases else None, remotes=remotes)

    warnings: list[str] = []
    if resolve_branches and commits:
        warnings.extend(
            resolve_all(
                commits,
                lambda h: git.branches_containing(repo, h),
                jobs=jobs,
                remotes=remotes,
            )
        )
    return RepoHistory(path=str(repo), commits=commits, warnings=warnings)


def get_contributors(repo: Path) -> RepoContributors:
    aliases = repo_alias_map(repo)
    if not git.has_commits(repo, all_refs=True):
        return RepoContributors(path=str(repo), contributors=[], mode="identity" if aliases else "summary")
    if aliases:
        pairs = parse_identity_log(git.raw_identity_log(repo))
        return RepoContributors(
            path=str(repo),
            contributors=aggregate_identities(pairs, aliases.canonicalize),
            mode="identity",
        )

    counts = parse_shortlog(git.raw_shortlog_counts(repo))
    emails = git.author_emails(repo) if counts else {}
    entries = [(name, count, emails.get(name, "")) for name, count in counts]
    return RepoContributors(path=str(repo), contributors=aggregate_summary(entries), mode="summary")


class Client:
    """
    Runs extraction over several repositories. A failing repository becomes a
    RepoFailure entry; the remaining repositories are still processed.
    """

    def __init__(self, config: Optional[Config] = None) -> None:
        self.config = config or Config()
        self.warnings: list[str] = []
        self._prepared = False

    def _prepare(self) -> None:
        if self._prepared:
            return
        self._prepared = True
        if not self.config.clone_if_not_exists:
            return
        for repo in self.config.active_repositories():
            if not repo.path:
                self.warnings.append(f"repository {repo.name or repo.url or 'unknown'} has no path and no url")
                continue
            _, warns = git.ensure_repository(Path(repo.path), url=repo.url, pull_if_exists=self.config.pull_if_exists)
            self.warnings.extend(warns)

    def repo_paths(self, paths: Optional[list[str]] = None) -> list[Path]:
        if paths:
            return [Path(p) for p in paths]
        self._prepare()
        return [Path(r.path) for r in self.config.active_repositories() if r.path]

    def list_contributors(self, paths: Optional[list[str]] = None) -> list[Union[RepoContributors, RepoFailure]]:
        results: list[Union[RepoContributors, RepoFailure]] = []
        for repo in self._require_paths(paths):
            if not git.is_git_repo(repo):
                results.append(RepoFailure(path=str(repo), error=f"{repo} is not a git repository"))
                continue
            try:
                results.append(get_contributors(repo))
            except git.GitCommandError as e:
                results.append(RepoFailure(path=str(repo), error=f"failed to get contributors from {repo}: {e}"))
        return results

    def history(
        self,
        paths: Optional[list[str]] = None,
        since: Optional[str] = None,
        until: Optional[str] = None,
        *,
        resolve_branches: Optional[bool] = None,
        jobs: Optional[int] = None,
        all_refs: bool = False,
    ) -> list[Union[RepoHistory, RepoFailure]]:
        if resolve_branches is None:
            resolve_branches = self.config.hist_resolve_branches
        if jobs is None:
            jobs = self.config.hist_jobs

        results: list[Union[RepoHistory, RepoFailure]] = []
        for repo in self._require_paths(paths):
            if not git.is_git_repo(repo):
                results.append(RepoFailure(path=str(repo), error=f"{repo} is not a git repository"))
                continue
            try:
                results.append(
                    get_history(
                        repo,
                        since,
                        until,
                        resolve_branches=resolve_branches,
                        jobs=jobs,
                        all_refs=all_refs,
                    )
                )
            except git.GitCommandError as e:
                results.append(RepoFailure(path=str(repo), error=f"failed to get commit history from {repo}: {e}"))
        return results

    def _require_paths(self, paths: Optional[list[str]]) -> list[Path]:
        repos = self.repo_paths(paths)
        if not repos:
            raise ValueError("no repository paths specified")
        return repos
