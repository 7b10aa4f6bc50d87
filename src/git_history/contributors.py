from __future__ import annotations

import dataclasses
import re
from collections import Counter
from typing import Callable, Iterable, Optional

from .identity import normalize_email
from .models import Commit, Contributor

_SHORTLOG_LINE = re.compile(r"^\s*(\d+)\s+(.+)$")

Canonicalize = Callable[[str], str]


@dataclasses.dataclass
class _Entry:
    email: str
    commits: int = 0
    name: str = ""
    max_individual: int = 0
    names: Counter[str] = dataclasses.field(default_factory=Counter)


class ContributorTable:
    """
    Contributors keyed by canonical email, in first-seen order.

    `add_event` records one commit (display name = most frequent raw name).
    `add_summary` records a pre-counted entry (display name = the name carried
    by the single largest entry). Do not mix both on one table.
    """

    def __init__(self, canonicalize: Optional[Canonicalize] = None) -> None:
        self._canonicalize = canonicalize or normalize_email
        self._entries: dict[str, _Entry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def _entry(self, raw_email: str) -> tuple[_Entry, bool]:
        key = self._canonicalize(raw_email)
        entry = self._entries.get(key)
        if entry is None:
            entry = _Entry(email=key)
            self._entries[key] = entry
            return entry, True
        return entry, False

    def add_event(self, name: str, email: str) -> None:
        entry, _ = self._entry(email)
        entry.commits += 1
        entry.names[name] += 1

    def add_summary(self, name: str, commits: int, email: str) -> None:
        entry, created = self._entry(email)
        entry.commits += commits
        if created or commits > entry.max_individual:
            entry.name = name
            entry.max_individual = commits

    def contributors(self) -> list[Contributor]:
        out: list[Contributor] = []
        for entry in self._entries.values():
            name = entry.name
            if entry.names:
                # most_common keeps first-encountered order among equal counts.
                name = entry.names.most_common(1)[0][0]
            out.append(Contributor(name=name, email=entry.email, commits=entry.commits))
        # Stable sort: ties keep first-seen order.
        out.sort(key=lambda c: -c.commits)
        return out


def parse_identity_log(text: str) -> list[tuple[str, str]]:
    """Parse `git log --format=%aN|%aE` output into (name, email) pairs."""
    pairs: list[tuple[str, str]] = []
    for line in (text or "").splitlines():
        if not line.strip() or "|" not in line:
            continue
        name, email = line.rsplit("|", 1)
        name = name.strip()
        email = email.strip()
        if not name or not email:
            continue
        pairs.append((name, email))
    return pairs


def parse_shortlog(text: str) -> list[tuple[str, int]]:
    """Parse `git shortlog -sn` output into (name, count) pairs."""
    out: list[tuple[str, int]] = []
    for line in (text or "").splitlines():
        m = _SHORTLOG_LINE.match(line)
        if not m:
            continue
        name = m.group(2).strip()
        if name:
            out.append((name, int(m.group(1))))
    return out


def aggregate_identities(pairs: Iterable[tuple[str, str]], canonicalize: Optional[Canonicalize] = None) -> list[Contributor]:
    table = ContributorTable(canonicalize)
    for name, email in pairs:
        table.add_event(name, email)
    return table.contributors()


def aggregate_commits(commits: Iterable[Commit], canonicalize: Optional[Canonicalize] = None) -> list[Contributor]:
    return aggregate_identities(((c.author_name, c.author_email) for c in commits), canonicalize)


def aggregate_summary(
    entries: Iterable[tuple[str, int, str]],
    canonicalize: Optional[Canonicalize] = None,
) -> list[Contributor]:
    table = ContributorTable(canonicalize)
    for name, commits, email in entries:
        table.add_summary(name, int(commits), email)
    return table.contributors()


def dedupe_by_email(result_sets: Iterable[Iterable[Contributor]]) -> list[Contributor]:
    """Merge contributors across repositories by case-folded email."""
    table = ContributorTable()
    for contributors in result_sets:
        for c in contributors:
            table.add_summary(c.name, c.commits, c.email)
    return table.contributors()
