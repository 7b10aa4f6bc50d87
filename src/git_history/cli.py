from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Optional, Sequence, Union

from .config import CONFIG_FILENAME, Config, ConfigError, resolve_config
from .contributors import dedupe_by_email
from .extract import Client
from .models import RepoContributors, RepoFailure, RepoHistory
from .report import (
    build_hist_report,
    contributors_json,
    render_contributor_list,
    render_contributors_text,
    render_hist_summary,
    write_commits_csv,
    write_json,
)

PROG = "git-history"


def _build_contributors_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog=f"{PROG} contributors", description="List contributors for the given git repositories.")
    p.add_argument("paths", nargs="*", help="Repository paths (defaults to repositories from the config file).")
    p.add_argument("--config", type=Path, default=None, help=f"Path to a config file (default: nearest {CONFIG_FILENAME}).")
    p.add_argument("--no-commits", action="store_true", help="Hide commit counts in the contributor list.")
    p.add_argument("-f", "--format", choices=["text", "json"], default=None, help="Output format (default: text).")
    p.add_argument("-u", "--unique-emails", action="store_true", help="Merge contributors across repositories by email.")
    return p


def _build_hist_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog=f"{PROG} hist", description="Generate a commit history report for the given git repositories.")
    p.add_argument("paths", nargs="*", help="Repository paths (defaults to repositories from the config file).")
    p.add_argument("--config", type=Path, default=None, help="Path to a config file.")
    p.add_argument("-s", "--since", type=str, default="", help='Start date (e.g. "2024-01-01", "1 month ago").')
    p.add_argument("-u", "--until", type=str, default="", help='End date (e.g. "2024-12-31", "now").')
    p.add_argument("-o", "--out", type=Path, default=None, help="Write the JSON report to this file (default: stdout).")
    p.add_argument("--csv", type=Path, default=None, help="Also write a flat commits CSV to this file.")
    p.add_argument("--all", action="store_true", help="Walk all refs instead of only HEAD.")
    p.add_argument("--no-branches", action="store_true", help="Skip per-commit branch membership lookups.")
    p.add_argument("--jobs", type=int, default=None, help="Parallel branch lookups per repository.")
    return p


def _print_root_help() -> None:
    print(f"usage: {PROG} <command> [options] [repo-path ...]")
    print("")
    print("Export contributor and commit history statistics from git repositories.")
    print("")
    print("commands:")
    print("  contributors   List contributors (merged by canonical email).")
    print("  hist           Generate a JSON commit history report.")
    print("")
    print(f"Run `{PROG} <command> --help` for command-specific options.")
    print(f"A {CONFIG_FILENAME} file in the working directory or a parent supplies defaults and repository paths.")


def _report_problems(client: Client, results: Sequence[Union[RepoContributors, RepoHistory, RepoFailure]]) -> int:
    for w in client.warnings:
        print(f"Warning: {w}", file=sys.stderr)
    failed = 0
    for r in results:
        if isinstance(r, RepoFailure):
            failed += 1
            print(f"Error: {r.error}", file=sys.stderr)
            continue
        for w in r.warnings:
            print(f"Warning: {r.path}: {w}", file=sys.stderr)
    return 2 if failed else 0


def run_contributors(args: argparse.Namespace, config: Config) -> int:
    client = Client(config)
    results = client.list_contributors(list(args.paths) or None)
    include_commits = not (args.no_commits or config.contributors_no_commits)
    fmt = args.format or config.contributors_format

    if args.unique_emails:
        merged = dedupe_by_email(r.contributors for r in results if isinstance(r, RepoContributors))
        if fmt == "json":
            print(json.dumps([c.to_dict(include_commits=include_commits) for c in merged], indent=2))
        else:
            print(render_contributor_list("Unique email addresses:", merged, include_commits=include_commits))
    elif fmt == "json":
        print(json.dumps(contributors_json(results, include_commits=include_commits), indent=2))
    else:
        print(render_contributors_text(results, include_commits=include_commits))

    return _report_problems(client, results)


def run_hist(args: argparse.Namespace, config: Config) -> int:
    client = Client(config)
    since = str(args.since or "").strip() or None
    until = str(args.until or "").strip() or None
    results = client.history(
        list(args.paths) or None,
        since,
        until,
        resolve_branches=False if args.no_branches else None,
        jobs=args.jobs,
        all_refs=bool(args.all),
    )
    report = build_hist_report(results, since=since, until=until)

    if args.out is not None:
        out_path = args.out.resolve()
        write_json(out_path, report)
        print(f"Report saved to: {out_path}")
        print(render_hist_summary(report))
    else:
        print(json.dumps(report, indent=2))
    if args.csv is not None:
        write_commits_csv(args.csv.resolve(), results)
        # stdout may carry the JSON report.
        print(f"Commits CSV saved to: {args.csv.resolve()}", file=sys.stderr)

    return _report_problems(client, results)


def main(argv: Optional[list[str]] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    if not argv or argv[0] in ("-h", "--help"):
        _print_root_help()
        return 0

    command, rest = argv[0], argv[1:]
    if command == "contributors":
        args = _build_contributors_parser().parse_args(rest)
        runner = run_contributors
    elif command == "hist":
        args = _build_hist_parser().parse_args(rest)
        runner = run_hist
    else:
        print(f"{PROG}: unknown command {command!r} (expected 'contributors' or 'hist')", file=sys.stderr)
        return 1

    try:
        config = resolve_config(args.config)
        return runner(args, config)
    except (ConfigError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
