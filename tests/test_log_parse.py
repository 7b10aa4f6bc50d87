from __future__ import annotations

from git_history.identity import parse_alias_rules
from git_history.log_parse import (
    iter_commits,
    normalize_numstat_path,
    parse_decorations,
    parse_header,
    parse_log_text,
    parse_numstat_line,
    strip_remote_prefix,
)


def test_single_commit_with_decorations() -> None:
    text = "abc123|Jane|jane@x.com|2024-01-01T00:00:00Z|fix bug|HEAD -> main, origin/main\n3\t1\tfile.ts\n"
    commits = parse_log_text(text)
    assert len(commits) == 1
    c = commits[0]
    assert c.hash == "abc123"
    assert c.author_name == "Jane"
    assert c.author_email == "jane@x.com"
    assert c.timestamp == "2024-01-01T00:00:00Z"
    assert c.message == "fix bug"
    assert c.insertions == 3
    assert c.deletions == 1
    assert c.files_changed == 1
    assert c.branches == {"main"}


def test_empty_text_yields_no_commits() -> None:
    assert parse_log_text("") == []
    assert parse_log_text("\n\n") == []


def test_commits_keep_stream_order_and_totals() -> None:
    text = "\n".join(
        [
            "c3|A|a@x.com|2024-03-01T10:00:00+02:00|third|",
            "",
            "10\t2\tsrc/a.py",
            "5\t0\tsrc/b.py",
            "c2|B|b@x.com|2024-02-01T10:00:00+02:00|second|",
            "c1|A|a@x.com|2024-01-01T10:00:00+02:00|first|tag: v1.0",
            "1\t1\tREADME.md",
        ]
    )
    commits = parse_log_text(text)
    assert [c.hash for c in commits] == ["c3", "c2", "c1"]
    for c in commits:
        assert c.insertions == sum(f.insertions for f in c.files)
        assert c.deletions == sum(f.deletions for f in c.files)
        assert c.files_changed == len(c.files)
    assert (commits[0].insertions, commits[0].deletions, commits[0].files_changed) == (15, 2, 2)
    assert commits[1].files == []
    assert commits[2].branches == set()


def test_malformed_file_lines_do_not_drop_commits() -> None:
    text = "\n".join(
        [
            "h1|A|a@x.com|2024-01-01T00:00:00Z|one|",
            "-\t-\timage.png",
            "x\t1\tbad.txt",
            "garbage",
            "2\t3\tgood.txt",
            "h2|A|a@x.com|2024-01-02T00:00:00Z|two|",
            "4\t",
        ]
    )
    commits = parse_log_text(text)
    assert [c.hash for c in commits] == ["h1", "h2"]
    assert [f.path for f in commits[0].files] == ["good.txt"]
    assert commits[0].insertions == 2
    assert commits[1].files == []


def test_invalid_header_discards_its_body() -> None:
    text = "\n".join(
        [
            "h1|A|a@x.com|2024-01-01T00:00:00Z|ok|",
            "1\t0\ta.txt",
            "h2|Nobody||2024-01-02T00:00:00Z|missing email|",
            "100\t100\tbig.bin",
            "h3|C|c@x.com",
            "7\t7\talso-dropped.txt",
            "h4|D|d@x.com|2024-01-04T00:00:00Z|fine|",
            "2\t2\td.txt",
        ]
    )
    commits = parse_log_text(text)
    assert [c.hash for c in commits] == ["h1", "h4"]
    assert commits[0].insertions == 1
    assert commits[1].insertions == 2


def test_duplicate_hash_is_dropped() -> None:
    text = "\n".join(
        [
            "h1|A|a@x.com|2024-01-01T00:00:00Z|one|",
            "1\t0\ta.txt",
            "h1|A|a@x.com|2024-01-01T00:00:00Z|one again|",
            "9\t9\tb.txt",
        ]
    )
    commits = parse_log_text(text)
    assert len(commits) == 1
    assert commits[0].message == "one"
    assert commits[0].insertions == 1


def test_header_without_subject_or_refs() -> None:
    h = parse_header("abc|Jane|jane@x.com|2024-01-01T00:00:00Z")
    assert h is not None
    assert h.subject == ""
    assert h.refs == ""

    h = parse_header("abc|Jane|jane@x.com|2024-01-01T00:00:00Z|subject only")
    assert h is not None
    assert h.subject == "subject only"
    assert h.refs == ""


def test_subject_may_contain_delimiter() -> None:
    h = parse_header("abc|Jane|jane@x.com|2024-01-01T00:00:00Z|a | b | c|HEAD -> dev")
    assert h is not None
    assert h.subject == "a | b | c"
    assert h.refs == "HEAD -> dev"


def test_header_requires_identity_fields() -> None:
    assert parse_header("abc|Jane|jane@x.com") is None
    assert parse_header("|Jane|jane@x.com|2024-01-01T00:00:00Z|s|") is None
    assert parse_header("abc| |jane@x.com|2024-01-01T00:00:00Z|s|") is None
    assert parse_header("abc|Jane|jane@x.com| |s|") is None


def test_parse_decorations() -> None:
    assert parse_decorations("HEAD -> main, origin/main") == ["main"]
    assert parse_decorations("tag: v1.0, feature/login, origin/HEAD") == ["feature/login"]
    assert parse_decorations("HEAD, upstream/release, release") == ["release"]
    assert parse_decorations("fork/topic", remotes={"fork"}) == ["topic"]
    assert parse_decorations("fork/topic") == ["fork/topic"]
    assert parse_decorations("grafted, HEAD -> main") == ["main"]
    assert parse_decorations("") == []


def test_strip_remote_prefix() -> None:
    assert strip_remote_prefix("origin/main") == "main"
    assert strip_remote_prefix("remotes/origin/feature/x") == "feature/x"
    assert strip_remote_prefix("refs/remotes/upstream/dev") == "dev"
    assert strip_remote_prefix("refs/heads/topic") == "topic"
    assert strip_remote_prefix("feature/x") == "feature/x"


def test_parse_numstat_line() -> None:
    fc = parse_numstat_line("3\t1\tfile.ts")
    assert fc is not None
    assert (fc.path, fc.insertions, fc.deletions) == ("file.ts", 3, 1)

    fc = parse_numstat_line("1\t2\tdocs/my notes.md")
    assert fc is not None
    assert fc.path == "docs/my notes.md"

    assert parse_numstat_line("-\t-\tlogo.png") is None
    assert parse_numstat_line("1\t2") is None
    assert parse_numstat_line("-1\t2\tx") is None


def test_normalize_numstat_path_rename_braces() -> None:
    assert normalize_numstat_path("src/{old => new}/file.py") == "src/new/file.py"
    assert normalize_numstat_path("src/{old.py => new.py}") == "src/new.py"
    assert normalize_numstat_path("src/{sub => }/file.py") == "src/file.py"
    assert normalize_numstat_path("old.txt => new.txt") == "new.txt"


def test_alias_canonicalization_applies_when_given() -> None:
    aliases = parse_alias_rules("<new@x.com> <old@x.com>")
    text = "h1|Jane|OLD@X.COM|2024-01-01T00:00:00Z|s|\n"
    assert parse_log_text(text)[0].author_email == "OLD@X.COM"
    assert parse_log_text(text, canonicalize=aliases.canonicalize)[0].author_email == "new@x.com"


def test_iter_commits_streams_lazily() -> None:
    lines = iter(
        [
            "h1|A|a@x.com|2024-01-01T00:00:00Z|one|\n",
            "1\t1\ta\n",
            "h2|B|b@x.com|2024-01-02T00:00:00Z|two|\n",
        ]
    )
    it = iter_commits(lines)
    first = next(it)
    assert first.hash == "h1"
    assert first.files_changed == 1
    assert [c.hash for c in it] == ["h2"]
