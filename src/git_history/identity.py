from __future__ import annotations

import dataclasses
import re
from typing import Callable, Optional

_EMAIL_TOKEN = re.compile(r"<([^<>]*)>")


def normalize_email(email: str) -> str:
    return email.strip().lower()


@dataclasses.dataclass(frozen=True)
class AliasMap:
    """
    Raw email -> canonical email, both lowercase.

    Built once per repository from `.mailmap`-style text. An empty map
    canonicalizes by case-folding only.
    """

    rules: dict[str, str] = dataclasses.field(default_factory=dict)

    @classmethod
    def empty(cls) -> AliasMap:
        return cls({})

    def __len__(self) -> int:
        return len(self.rules)

    def __bool__(self) -> bool:
        return bool(self.rules)

    def canonicalize(self, raw_email: str) -> str:
        email = normalize_email(raw_email)
        return self.rules.get(email, email)

    __call__ = canonicalize


def _email_tokens(line: str) -> list[str]:
    out: list[str] = []
    for m in _EMAIL_TOKEN.finditer(line):
        tok = normalize_email(m.group(1))
        if tok:
            out.append(tok)
    return out


def _strip_comment(line: str) -> str:
    # "#" starts a comment unless it is inside <...>.
    depth = 0
    for i, ch in enumerate(line):
        if ch == "<":
            depth += 1
        elif ch == ">" and depth:
            depth -= 1
        elif ch == "#" and not depth:
            return line[:i]
    return line


def parse_alias_rules(text: Optional[str]) -> AliasMap:
    if not text:
        return AliasMap.empty()

    rules: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        emails = _email_tokens(_strip_comment(line))
        if len(emails) < 2:
            continue
        canonical = emails[0]
        for alias in emails[1:]:
            if alias != canonical:
                rules[alias] = canonical

    # Collapse chains (a -> b, b -> c) so canonicalize stays idempotent.
    for alias in list(rules):
        seen = {alias}
        target = rules[alias]
        while target in rules and target not in seen:
            seen.add(target)
            target = rules[target]
        rules[alias] = target
    for alias in [a for a, t in rules.items() if a == t]:
        del rules[alias]
    return AliasMap(rules)


def load_alias_map(read_text: Callable[[], Optional[str]]) -> AliasMap:
    """Read alias text through `read_text`; unreadable input means no aliases."""
    try:
        text = read_text()
    except (OSError, UnicodeDecodeError):
        return AliasMap.empty()
    return parse_alias_rules(text)
