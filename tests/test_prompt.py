"""Tests for prompt assembly."""

from tests.conftest import make_message
from whatbot.llm.prompt import build_prompt, first_name

PERSONA = "You are a helpful assistant."


def _history(*items: tuple[str, str]):
    return [make_message(body, sender=sender, conversation="c1", msg_id=f"h{i}")
            for i, (sender, body) in enumerate(items)]


def test_end_to_end_prompt() -> None:
    trigger = make_message("What time is it?", sender="c1")
    history = _history(("c1", "Hi"), ("self", "Hello"))

    prompt = build_prompt(PERSONA, "Alex", "Sam", trigger, history, window_size=6)

    assert prompt == "You are a helpful assistant. Sam:\nSam: Hi\nMe (Alex): Hello\nMe (Alex):"


def test_ends_with_self_cue_without_newline() -> None:
    trigger = make_message("hey", sender="c1")
    prompt = build_prompt(PERSONA, "Alex", "Sam", trigger, [], window_size=6)

    assert prompt.endswith("Me (Alex):")
    assert not prompt.endswith("\n")
    assert prompt == "You are a helpful assistant. Sam:\nMe (Alex):"


def test_attribution_by_sender() -> None:
    trigger = make_message("question", sender="c1")
    history = _history(("c1", "from contact"), ("me@c.us", "from me"), ("other", "from other"))

    prompt = build_prompt(PERSONA, "Alex", "Sam", trigger, history, window_size=6)

    assert "Sam: from contact\n" in prompt
    assert "Me (Alex): from me\n" in prompt
    assert "Me (Alex): from other\n" in prompt


def test_window_bound_keeps_most_recent() -> None:
    trigger = make_message("latest", sender="c1")
    history = _history(*[("c1", f"message number {i}") for i in range(10)])

    prompt = build_prompt("P", "Alex", "Sam", trigger, history, window_size=3)

    lines = prompt.split("\n")[1:-1]
    assert lines == [
        "Sam: message number 7",
        "Sam: message number 8",
        "Sam: message number 9",
    ]


def test_duplicate_body_rendered_once() -> None:
    trigger = make_message("again?", sender="c1")
    history = _history(("c1", "see you tomorrow"), ("self", "see you tomorrow"))

    prompt = build_prompt("P", "Alex", "Sam", trigger, history, window_size=6)

    assert prompt.count("see you tomorrow") == 1
    assert "Sam: see you tomorrow\n" in prompt


def test_trigger_in_history_is_not_repeated() -> None:
    trigger = make_message("Are you there?", sender="c1")
    history = _history(("self", "Hello"), ("c1", "Are you there?"), ("c1", "Are you there?"))

    prompt = build_prompt("P", "Alex", "Sam", trigger, history, window_size=6)

    assert prompt.count("Are you there?") == 1


def test_substring_of_earlier_line_is_dropped() -> None:
    # Known quirk: "ok" already occurs inside "looks ok to me".
    trigger = make_message("?", sender="c1")
    history = _history(("c1", "looks ok to me"), ("self", "ok"))

    prompt = build_prompt("P", "Alex", "Sam", trigger, history, window_size=6)

    assert "Me (Alex): ok\n" not in prompt


def test_body_matching_persona_text_is_dropped() -> None:
    trigger = make_message("?", sender="c1")
    history = _history(("c1", "helpful"))

    prompt = build_prompt(PERSONA, "Alex", "Sam", trigger, history, window_size=6)

    assert prompt == "You are a helpful assistant. Sam:\nMe (Alex):"


def test_zero_window_renders_no_history() -> None:
    trigger = make_message("hi", sender="c1")
    prompt = build_prompt("P", "Alex", "Sam", trigger, _history(("c1", "old")), window_size=0)
    assert prompt == "P Sam:\nMe (Alex):"


def test_first_name() -> None:
    assert first_name("Alex Smith") == "Alex"
    assert first_name("Alex") == "Alex"
    assert first_name("") == ""
