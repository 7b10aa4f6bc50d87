from __future__ import annotations

import csv
import datetime as dt
import json
from pathlib import Path
from typing import Optional, Sequence, Union

from .models import Contributor, RepoContributors, RepoFailure, RepoHistory


def ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def write_json(path: Path, data: object) -> None:
    ensure_dir(path.parent)
    path.write_text(json.dumps(data, indent=2, sort_keys=False) + "\n", encoding="utf-8")


def history_summary(history: RepoHistory) -> dict[str, int]:
    paths = {f.path for c in history.commits for f in c.files}
    return {
        "total_commits": len(history.commits),
        "total_files_changed": len(paths),
        "total_insertions": sum(c.insertions for c in history.commits),
        "total_deletions": sum(c.deletions for c in history.commits),
    }


def build_hist_report(
    results: Sequence[Union[RepoHistory, RepoFailure]],
    *,
    since: Optional[str] = None,
    until: Optional[str] = None,
    generated_at: Optional[dt.datetime] = None,
) -> dict[str, object]:
    now = generated_at or dt.datetime.now(dt.timezone.utc)
    repositories: list[dict[str, object]] = []
    failures: list[dict[str, str]] = []
    for r in results:
        if isinstance(r, RepoFailure):
            failures.append(r.to_dict())
            continue
        repositories.append(
            {
                "path": r.path,
                "commits": [c.to_dict() for c in r.commits],
                "summary": history_summary(r),
                "warnings": list(r.warnings),
            }
        )
    return {
        "generated_at": now.isoformat(timespec="seconds"),
        "period": {"since": since, "until": until},
        "repositories": repositories,
        "failures": failures,
    }


def write_commits_csv(path: Path, results: Sequence[Union[RepoHistory, RepoFailure]]) -> None:
    ensure_dir(path.parent)
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(
            [
                "repo_path",
                "hash",
                "author_name",
                "author_email",
                "timestamp",
                "message",
                "files_changed",
                "insertions",
                "deletions",
                "branches",
            ]
        )
        for r in results:
            if isinstance(r, RepoFailure):
                continue
            for c in r.commits:
                writer.writerow(
                    [
                        r.path,
                        c.hash,
                        c.author_name,
                        c.author_email,
                        c.timestamp,
                        c.message,
                        c.files_changed,
                        c.insertions,
                        c.deletions,
                        ";".join(sorted(c.branches)),
                    ]
                )


def contributors_json(
    results: Sequence[Union[RepoContributors, RepoFailure]],
    *,
    include_commits: bool = True,
) -> list[dict[str, object]]:
    out: list[dict[str, object]] = []
    for r in results:
        if isinstance(r, RepoFailure):
            continue
        out.append(
            {
                "path": r.path,
                "contributors": [c.to_dict(include_commits=include_commits) for c in r.contributors],
            }
        )
    return out


def _contributor_line(c: Contributor, include_commits: bool) -> str:
    if include_commits:
        return f"  {c.name} <{c.email}> ({c.commits} commits)"
    return f"  {c.name} <{c.email}>"


def render_contributor_list(title: str, contributors: Sequence[Contributor], *, include_commits: bool = True) -> str:
    lines = ["", title, "─" * 60]
    if not contributors:
        lines.append("  No contributors found")
    for c in contributors:
        lines.append(_contributor_line(c, include_commits))
    return "\n".join(lines)


def render_contributors_text(
    results: Sequence[Union[RepoContributors, RepoFailure]],
    *,
    include_commits: bool = True,
) -> str:
    blocks: list[str] = []
    for r in results:
        if isinstance(r, RepoFailure):
            continue
        blocks.append(render_contributor_list(f"Contributors for {r.path}:", r.contributors, include_commits=include_commits))
    return "\n".join(blocks)


def render_hist_summary(report: dict[str, object]) -> str:
    lines: list[str] = ["Summary:"]
    for repo in list(report.get("repositories") or []):
        summary = dict(repo.get("summary") or {})
        lines.append("")
        lines.append(f"  Repository: {repo.get('path')}")
        lines.append(f"  Commits: {int(summary.get('total_commits', 0))}")
        lines.append(f"  Files Changed: {int(summary.get('total_files_changed', 0))}")
        lines.append(f"  Lines Added: {int(summary.get('total_insertions', 0)):,}")
        lines.append(f"  Lines Removed: {int(summary.get('total_deletions', 0)):,}")
    return "\n".join(lines)
