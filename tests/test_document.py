from __future__ import annotations

from forager.ingest.document import build_document, build_history_document


def test_build_document_orders_fields() -> None:
    document = build_document(
        project_path="/work/app",
        git_branch="main",
        summary="Fix login",
        first_prompt="the login form 500s",
        user_messages=["the login form 500s", "now add a test"],
    )

    assert document == (
        "Project: /work/app\n"
        "Branch: main\n"
        "Summary: Fix login\n"
        "First prompt: the login form 500s\n"
        "Key messages: the login form 500s | now add a test"
    )


def test_build_document_omits_empty_fields() -> None:
    assert build_document(first_prompt="hello") == "First prompt: hello"
    assert build_document() == ""


def test_build_document_caps_messages() -> None:
    messages = [f"m{i}" for i in range(10)]
    document = build_document(user_messages=messages, max_messages=8)
    assert document == "Key messages: " + " | ".join(messages[:8])


def test_build_document_is_deterministic() -> None:
    kwargs = dict(project_path="/p", summary="s", user_messages=("a", "b"))
    assert build_document(**kwargs) == build_document(**kwargs)


def test_build_history_document() -> None:
    document = build_history_document(
        project_path="/p", prompts=["fix bug", "add test"], max_length=300
    )
    assert document == "Project: /p\nFirst prompt: fix bug\nPrompts: fix bug | add test"


def test_build_history_document_truncates_each_prompt_and_keeps_all() -> None:
    prompts = ["a" * 5] + [f"p{i}" for i in range(20)]
    document = build_history_document(project_path="", prompts=prompts, max_length=3)
    lines = document.split("\n")
    assert lines[0] == "First prompt: aaaaa"
    assert lines[1].startswith("Prompts: aaa... | p0 | p1")
    assert lines[1].count(" | ") == 20
