from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Optional

from .log_parse import LOG_PRETTY_FORMAT

MAILMAP_FILENAME = ".mailmap"


class GitCommandError(RuntimeError):
    def __init__(self, args: list[str], code: int, stderr: str) -> None:
        self.git_args = list(args)
        self.code = code
        self.stderr = stderr
        detail = stderr.strip()[:500]
        msg = f"git {' '.join(args)} exited {code}"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)


def run_git(args: list[str], cwd: Path, timeout_s: int = 300) -> tuple[int, str, str]:
    proc = subprocess.run(
        ["git", *args],
        cwd=str(cwd),
        stdin=subprocess.DEVNULL,
        capture_output=True,
        text=True,
        encoding="utf-8",
        errors="replace",
        timeout=timeout_s,
    )
    return proc.returncode, proc.stdout, proc.stderr


def git_output(args: list[str], cwd: Path, timeout_s: int = 300) -> str:
    try:
        code, out, err = run_git(args, cwd=cwd, timeout_s=timeout_s)
    except FileNotFoundError as e:
        raise GitCommandError(args, 127, f"failed to run git: {e}") from e
    except NotADirectoryError as e:
        raise GitCommandError(args, 128, f"failed to run git: {e}") from e
    except subprocess.TimeoutExpired as e:
        raise GitCommandError(args, 124, f"timed out after {timeout_s}s") from e
    if code != 0:
        raise GitCommandError(args, code, err)
    return out


def is_git_repo(path: Path) -> bool:
    if not path.is_dir():
        return False
    try:
        code, out, _ = run_git(["rev-parse", "--is-inside-work-tree"], cwd=path, timeout_s=30)
    except (OSError, subprocess.TimeoutExpired):
        return False
    return code == 0 and out.strip() == "true"


def get_remote_names(repo: Path) -> list[str]:
    try:
        out = git_output(["remote"], cwd=repo, timeout_s=30)
    except GitCommandError:
        return []
    return [line.strip() for line in out.splitlines() if line.strip()]


def has_commits(repo: Path, *, all_refs: bool = False, timeout_s: int = 30) -> bool:
    if all_refs:
        return bool(git_output(["rev-list", "-n", "1", "--all"], cwd=repo, timeout_s=timeout_s).strip())
    try:
        git_output(["rev-parse", "-q", "--verify", "HEAD^{commit}"], cwd=repo, timeout_s=timeout_s)
    except GitCommandError as e:
        # Exit 1 with no output: HEAD is unborn.
        if e.code == 1:
            return False
        raise
    return True


def raw_alias_file_text(repo: Path) -> Optional[str]:
    path = repo / MAILMAP_FILENAME
    if not path.is_file():
        return None
    return path.read_text(encoding="utf-8", errors="replace")


def raw_log_text(
    repo: Path,
    since: Optional[str] = None,
    until: Optional[str] = None,
    *,
    use_mailmap: bool = False,
    all_refs: bool = False,
    include_merges: bool = True,
    timeout_s: int = 600,
) -> str:
    args = [
        "-c",
        "core.quotepath=false",
        "log",
        f"--format={LOG_PRETTY_FORMAT}",
        "--date=iso-strict",
        "--decorate=short",
        "--numstat",
    ]
    if use_mailmap:
        args.append("--use-mailmap")
    if all_refs:
        args.append("--all")
    if not include_merges:
        args.append("--no-merges")
    if since:
        args.append(f"--since={since}")
    if until:
        args.append(f"--until={until}")
    return git_output(args, cwd=repo, timeout_s=timeout_s)


def raw_identity_log(repo: Path, timeout_s: int = 600) -> str:
    return git_output(["log", "--all", "--use-mailmap", "--format=%aN|%aE"], cwd=repo, timeout_s=timeout_s)


def raw_shortlog_counts(repo: Path, timeout_s: int = 300) -> str:
    return git_output(["shortlog", "-sn", "--all"], cwd=repo, timeout_s=timeout_s)


def author_emails(repo: Path, timeout_s: int = 300) -> dict[str, str]:
    """Most recent email per exact author name, across all refs."""
    out = git_output(["log", "--all", "--format=%aN%x00%aE"], cwd=repo, timeout_s=timeout_s)
    emails: dict[str, str] = {}
    for line in out.splitlines():
        name, sep, email = line.partition("\0")
        if sep and name not in emails:
            emails[name] = email.strip()
    return emails


def email_for_author(repo: Path, name: str, timeout_s: int = 300) -> str:
    return author_emails(repo, timeout_s=timeout_s).get(name, "")


def branches_containing(repo: Path, commit_hash: str, timeout_s: int = 60) -> list[str]:
    out = git_output(["branch", "-a", "--no-color", "--contains", commit_hash], cwd=repo, timeout_s=timeout_s)
    return [line for line in out.splitlines() if line.strip()]


def extract_repo_name_from_url(url: str) -> str:
    r = (url or "").strip().rstrip("/")
    if r.endswith(".git"):
        r = r[:-4]
    name = r.replace(":", "/").rsplit("/", 1)[-1]
    return name or "repository"


def ensure_repository(
    path: Path,
    *,
    url: str = "",
    pull_if_exists: bool = True,
    timeout_s: int = 600,
) -> tuple[Optional[Path], list[str]]:
    """
    Make `path` a usable checkout: clone from `url` when missing, otherwise
    optionally fetch and pull. Returns (path or None, warnings).
    """
    warnings: list[str] = []
    if path.exists() and is_git_repo(path):
        if pull_if_exists:
            try:
                git_output(["fetch", "--all", "--prune"], cwd=path, timeout_s=timeout_s)
                git_output(["pull"], cwd=path, timeout_s=timeout_s)
            except GitCommandError as e:
                warnings.append(f"failed to update {path}: {e}; continuing with existing checkout")
        return path, warnings

    if path.exists():
        warnings.append(f"path exists but is not a git repository: {path}")
        return None, warnings

    if not url:
        warnings.append(f"repository not found at {path} and no url configured for cloning")
        return None, warnings

    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        git_output(["clone", url, str(path)], cwd=path.parent, timeout_s=timeout_s)
    except GitCommandError as e:
        warnings.append(f"failed to clone {url}: {e}")
        return None, warnings
    return path, warnings
