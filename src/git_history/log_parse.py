from __future__ import annotations

import dataclasses
from typing import Callable, Iterable, Iterator, Optional

from .models import Commit, FileChange

HEADER_DELIMITER = "|"
# hash|author name|author email|author date (strict ISO)|subject|decorations
LOG_PRETTY_FORMAT = "%H|%an|%ae|%aI|%s|%D"
DEFAULT_REMOTES = frozenset({"origin", "upstream"})

_TAG_MARKER = "tag:"
_HEAD_POINTER = "HEAD -> "
# Decorations git emits that are not refs.
_NON_REF_DECORATIONS = frozenset({"HEAD", "grafted", "replaced"})


@dataclasses.dataclass(frozen=True)
class LogHeader:
    hash: str
    author_name: str
    author_email: str
    timestamp: str
    subject: str = ""
    refs: str = ""


def normalize_numstat_path(path: str) -> str:
    p = path.strip()
    # `git log --numstat` may render renames like: src/{old => new}/file.py or src/{old.py => new.py}
    if " => " in p:
        if "{" in p and "}" in p:
            head, rest = p.split("{", 1)
            inner, tail = rest.split("}", 1)
            new = inner.split(" => ")[-1]
            p = f"{head}{new}{tail}"
        else:
            p = p.split(" => ")[-1]
        while "//" in p:
            p = p.replace("//", "/")
    return p.strip()


def strip_remote_prefix(name: str, remotes: Iterable[str] = DEFAULT_REMOTES) -> str:
    n = name.strip()
    if n.startswith("refs/heads/"):
        return n[len("refs/heads/") :]
    for prefix in ("refs/remotes/", "remotes/"):
        if n.startswith(prefix):
            rest = n[len(prefix) :]
            return rest.split("/", 1)[1] if "/" in rest else rest
    if "/" in n:
        head, rest = n.split("/", 1)
        if head in set(remotes):
            return rest
    return n


def parse_decorations(refs: str, remotes: Iterable[str] = DEFAULT_REMOTES) -> list[str]:
    remote_names = frozenset(remotes)
    out: list[str] = []
    for raw in (refs or "").split(","):
        d = raw.strip()
        if not d:
            continue
        if d.startswith(_HEAD_POINTER):
            name = d[len(_HEAD_POINTER) :]
        elif d.startswith(_TAG_MARKER) or d in _NON_REF_DECORATIONS:
            continue
        else:
            name = d
        name = strip_remote_prefix(name, remote_names)
        # `origin/HEAD` collapses to HEAD after stripping.
        if not name or name == "HEAD":
            continue
        if name not in out:
            out.append(name)
    return out


def parse_header(line: str) -> Optional[LogHeader]:
    parts = line.split(HEADER_DELIMITER)
    if len(parts) < 4:
        return None
    commit_hash, name, email, timestamp = (p.strip() for p in parts[:4])
    if not (commit_hash and name and email and timestamp):
        return None
    subject = ""
    refs = ""
    if len(parts) >= 6:
        # The subject may itself contain the delimiter; decorations are always last.
        subject = HEADER_DELIMITER.join(parts[4:-1])
        refs = parts[-1]
    elif len(parts) == 5:
        subject = parts[4]
    return LogHeader(
        hash=commit_hash,
        author_name=name,
        author_email=email,
        timestamp=timestamp,
        subject=subject.strip(),
        refs=refs.strip(),
    )


def parse_numstat_line(line: str) -> Optional[FileChange]:
    parts = line.strip().split("\t", 2)
    if len(parts) < 3:
        parts = line.split(None, 2)
    if len(parts) < 3:
        return None
    try:
        added = int(parts[0])
        deleted = int(parts[1])
    except ValueError:
        # Binary files are reported as "-\t-\tpath".
        return None
    if added < 0 or deleted < 0:
        return None
    path = normalize_numstat_path(parts[2])
    if not path:
        return None
    return FileChange(path=path, insertions=added, deletions=deleted)


def iter_commits(
    lines: Iterable[str],
    *,
    canonicalize: Optional[Callable[[str], str]] = None,
    remotes: Iterable[str] = DEFAULT_REMOTES,
) -> Iterator[Commit]:
    """
    Yield commits in stream order from decorated `git log --numstat` lines.

    A commit is yielded once the next header line arrives (or the stream ends).
    Invalid headers and duplicate hashes are dropped along with their file lines.
    """
    remote_names = frozenset(remotes)
    seen: set[str] = set()
    current: Optional[Commit] = None

    for raw_line in lines:
        line = raw_line.rstrip("\r\n")
        if not line.strip():
            continue

        if HEADER_DELIMITER in line:
            if current is not None:
                yield current
                current = None
            header = parse_header(line)
            if header is None or header.hash in seen:
                continue
            seen.add(header.hash)
            email = canonicalize(header.author_email) if canonicalize is not None else header.author_email
            current = Commit(
                hash=header.hash,
                author_name=header.author_name,
                author_email=email,
                timestamp=header.timestamp,
                message=header.subject,
                branches=set(parse_decorations(header.refs, remote_names)),
            )
            continue

        if current is None:
            continue
        change = parse_numstat_line(line)
        if change is not None:
            current.files.append(change)

    if current is not None:
        yield current


def parse_log_text(
    text: str,
    *,
    canonicalize: Optional[Callable[[str], str]] = None,
    remotes: Iterable[str] = DEFAULT_REMOTES,
) -> list[Commit]:
    if not text:
        return []
    return list(iter_commits(text.splitlines(), canonicalize=canonicalize, remotes=remotes))
