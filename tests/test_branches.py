from __future__ import annotations

import threading

from git_history.branches import apply_resolution, normalize_ref, resolve_all, resolve_commit_branches
from git_history.models import Commit


def _commit(h: str, branches: set[str] | None = None) -> Commit:
    return Commit(hash=h, author_name="A", author_email="a@x.com", timestamp="2024-01-01T00:00:00Z", branches=set(branches or set()))


def test_normalize_ref() -> None:
    assert normalize_ref("* main") == "main"
    assert normalize_ref("  feature/x") == "feature/x"
    assert normalize_ref("+ wt-branch") == "wt-branch"
    assert normalize_ref("  remotes/origin/main") == "main"
    assert normalize_ref("  remotes/origin/HEAD -> origin/main") is None
    assert normalize_ref("* (HEAD detached at abc123)") is None
    assert normalize_ref("HEAD") is None
    assert normalize_ref("   ") is None


def test_resolution_unions_with_decoration_branches() -> None:
    c = _commit("h1", {"main"})
    raw = ["* main", "  feature/x", "  remotes/origin/main", "  remotes/origin/release", "  remotes/origin/HEAD -> origin/main"]
    res = resolve_commit_branches(c, lambda h: raw)
    assert res.ok
    apply_resolution(c, res)
    assert c.branches == {"main", "feature/x", "release"}


def test_failed_query_leaves_branches_unchanged() -> None:
    c = _commit("h1", {"main"})

    def boom(h: str) -> list[str]:
        raise RuntimeError("unreachable commit")

    res = resolve_commit_branches(c, boom)
    assert not res.ok
    assert "unreachable commit" in res.error
    apply_resolution(c, res)
    assert c.branches == {"main"}


def test_result_order_does_not_change_outcome() -> None:
    raw = ["  b", "* a", "  remotes/origin/c", "  a"]
    c1 = _commit("h1", {"d"})
    c2 = _commit("h1", {"d"})
    apply_resolution(c1, resolve_commit_branches(c1, lambda h: raw))
    apply_resolution(c2, resolve_commit_branches(c2, lambda h: list(reversed(raw))))
    assert c1.branches == c2.branches == {"a", "b", "c", "d"}

    # Applying the same resolution twice is a no-op.
    res = resolve_commit_branches(c1, lambda h: raw)
    apply_resolution(c1, res)
    apply_resolution(c1, res)
    assert c1.branches == {"a", "b", "c", "d"}


def test_apply_ignores_resolution_for_other_commit() -> None:
    c = _commit("h1")
    other = resolve_commit_branches(_commit("h2"), lambda h: ["* main"])
    apply_resolution(c, other)
    assert c.branches == set()


def test_resolve_all_sequential_and_parallel_agree() -> None:
    membership = {
        "h1": ["* main"],
        "h2": ["* main", "  dev"],
        "h3": ["  remotes/origin/dev"],
    }

    def contains(h: str) -> list[str]:
        if h == "h4":
            raise RuntimeError("lookup timed out")
        return membership[h]

    seq = [_commit(h) for h in ("h1", "h2", "h3", "h4")]
    par = [_commit(h) for h in ("h1", "h2", "h3", "h4")]
    seq_warnings = resolve_all(seq, contains, jobs=1)
    par_warnings = resolve_all(par, contains, jobs=4)

    assert [c.branches for c in seq] == [c.branches for c in par]
    assert seq[1].branches == {"main", "dev"}
    assert seq[2].branches == {"dev"}
    assert seq[3].branches == set()
    assert len(seq_warnings) == 1 and "h4" in seq_warnings[0]
    assert len(par_warnings) == 1


def test_resolve_all_parallel_resolves_every_commit() -> None:
    calls: list[str] = []
    lock = threading.Lock()

    def contains(h: str) -> list[str]:
        with lock:
            calls.append(h)
        return ["* main"]

    commits = [_commit(f"h{i}") for i in range(20)]
    assert resolve_all(commits, contains, jobs=4) == []
    assert all(c.branches == {"main"} for c in commits)
    assert sorted(calls) == sorted(c.hash for c in commits)
