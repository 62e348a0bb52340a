from __future__ import annotations

from forager.ingest.discovery import (
    PromptRecord,
    discover_sessions,
    group_prompts,
    project_hash,
    read_prompt_log,
    read_session_index,
    synthetic_session_id,
)
from forager.ingest.types import HistoryEntry, IndexEntry, OrphanEntry

MINUTE_MS = 60 * 1000


def test_project_hash_matches_known_values() -> None:
    assert project_hash("") == "0"
    assert project_hash("/p") == "17l"


def test_synthetic_session_id_is_stable() -> None:
    first = synthetic_session_id(1000, "/home/me/app")
    second = synthetic_session_id(1000, "/home/me/app")
    assert first == second
    assert first.startswith("history-1000-")
    assert synthetic_session_id(1000, "/p") == "history-1000-17l"
    assert synthetic_session_id(1000, "/home/me/other") != first


def test_grouping_merges_within_gap_and_splits_beyond() -> None:
    t0 = 1_700_000_000_000
    merged = group_prompts(
        [PromptRecord("a", t0, "/p"), PromptRecord("b", t0 + 29 * MINUTE_MS, "/p")]
    )
    split = group_prompts(
        [PromptRecord("a", t0, "/p"), PromptRecord("b", t0 + 31 * MINUTE_MS, "/p")]
    )
    assert [entry.prompts for entry in merged] == [("a", "b")]
    assert [entry.prompts for entry in split] == [("a",), ("b",)]


def test_grouping_splits_when_project_changes() -> None:
    t0 = 1_700_000_000_000
    groups = group_prompts(
        [PromptRecord("a", t0, "/a"), PromptRecord("b", t0 + 29 * MINUTE_MS, "/b")]
    )
    assert [(g.project_path, g.prompts) for g in groups] == [("/a", ("a",)), ("/b", ("b",))]


def test_grouping_gap_is_measured_from_latest_record() -> None:
    t0 = 1_700_000_000_000
    groups = group_prompts(
        [
            PromptRecord("a", t0, "/p"),
            PromptRecord("b", t0 + 20 * MINUTE_MS, "/p"),
            PromptRecord("c", t0 + 40 * MINUTE_MS, "/p"),
        ]
    )
    assert len(groups) == 1
    assert groups[0].first_timestamp == t0
    assert groups[0].last_timestamp == t0 + 40 * MINUTE_MS


def test_grouping_sorts_records_by_timestamp() -> None:
    t0 = 1_700_000_000_000
    groups = group_prompts(
        [PromptRecord("second", t0 + MINUTE_MS, "/p"), PromptRecord("first", t0, "/p")]
    )
    assert groups[0].prompts == ("first", "second")
    assert groups[0].session_id == synthetic_session_id(t0, "/p")


def test_history_scenario_produces_two_sessions(claude_home) -> None:
    claude_home.write_history(
        [
            {"display": "fix bug", "timestamp": 1000, "project": "/p"},
            {"display": "add test", "timestamp": 1000 + 60000, "project": "/p"},
            {"display": "unrelated", "timestamp": 1000 + 3_000_000, "project": "/p"},
        ]
    )

    entries = discover_sessions(claude_home.sources)

    assert all(isinstance(entry, HistoryEntry) for entry in entries)
    assert [entry.prompts for entry in entries] == [("fix bug", "add test"), ("unrelated",)]
    assert entries[0].session_id == "history-1000-17l"
    assert entries[0].created == "1970-01-01T00:00:01.000Z"
    assert entries[0].modified == "1970-01-01T00:01:01.000Z"
    assert entries[0].message_count == 2


def test_prompt_log_skips_malformed_and_incomplete_lines(claude_home) -> None:
    claude_home.write_history(
        [
            "{not json",
            '"just a string"',
            {"display": "", "timestamp": 5, "project": "/p"},
            {"display": "no timestamp", "project": "/p"},
            {"display": "kept", "timestamp": 10},
        ]
    )

    records = read_prompt_log(claude_home.history_path)

    assert records == [PromptRecord(display="kept", timestamp=10, project="")]


def test_index_entries_claim_ids_before_orphans(claude_home, make_user_record) -> None:
    claude_home.write_index(
        "-work-app",
        [{"sessionId": "abc", "summary": "Indexed session", "projectPath": "/work/app"}],
    )
    claude_home.write_transcript("-work-app", "abc", [make_user_record("hi")])
    claude_home.write_transcript("-work-app", "def", [make_user_record("loose")])

    entries = discover_sessions(claude_home.sources)

    by_id = {entry.session_id: entry for entry in entries}
    assert [entry.session_id for entry in entries] == ["abc", "def"]
    assert isinstance(by_id["abc"], IndexEntry)
    assert by_id["abc"].transcript_path == claude_home.projects_dir / "-work-app" / "abc.jsonl"
    assert isinstance(by_id["def"], OrphanEntry)
    assert by_id["def"].project_dir_name == "-work-app"


def test_session_id_is_unique_across_projects_and_sources(claude_home, make_user_record) -> None:
    claude_home.write_index("-a", [{"sessionId": "same"}])
    claude_home.write_index("-b", [{"sessionId": "same"}])
    claude_home.write_transcript("-b", "same", [make_user_record("x")])
    claude_home.write_transcript("-c", "history-1000-17l", [make_user_record("x")])
    claude_home.write_history([{"display": "fix bug", "timestamp": 1000, "project": "/p"}])

    entries = discover_sessions(claude_home.sources)

    ids = [entry.session_id for entry in entries]
    assert len(ids) == len(set(ids))
    assert sorted(ids) == ["history-1000-17l", "same"]
    assert [entry.provenance for entry in entries] == ["index", "orphan"]


def test_malformed_index_file_is_skipped(claude_home, make_user_record) -> None:
    project = claude_home.project("-broken")
    (project / "sessions-index.json").write_text("{oops")
    claude_home.write_transcript("-broken", "orphaned", [make_user_record("hello")])

    assert read_session_index(project) == []
    entries = discover_sessions(claude_home.sources)
    assert [(e.session_id, e.provenance) for e in entries] == [("orphaned", "orphan")]


def test_index_entries_without_session_id_are_ignored(claude_home) -> None:
    claude_home.write_index(
        "-p",
        [
            {"summary": "no id"},
            "not an object",
            {"sessionId": "ok", "fullPath": "/elsewhere/ok.jsonl", "fileMtime": 1234.0},
        ],
    )
    entries = read_session_index(claude_home.projects_dir / "-p")
    assert len(entries) == 1
    assert entries[0].transcript_path.as_posix() == "/elsewhere/ok.jsonl"
    assert entries[0].file_mtime == 1234


def test_missing_sources_yield_nothing(tmp_path) -> None:
    from forager.ingest.discovery import SessionSources

    sources = SessionSources(
        projects_dir=tmp_path / "nope", history_path=tmp_path / "nope.jsonl"
    )
    assert discover_sessions(sources) == []


def test_discovery_is_deterministic(claude_home, make_user_record) -> None:
    for name in ("zeta", "alpha", "mid"):
        claude_home.write_transcript("-p", name, [make_user_record(name)])
    first = discover_sessions(claude_home.sources)
    second = discover_sessions(claude_home.sources)
    assert first == second
    assert [entry.session_id for entry in first] == ["alpha", "mid", "zeta"]
