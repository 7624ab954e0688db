"""Tests for duochat/output.py."""

from duochat import output
from duochat.models import ASSISTANT, ERROR_PLACEHOLDER, USER, Message


def _messages() -> list[Message]:
    return [
        Message("1", "hello", USER, "claude"),
        Message("2", "**Hi** Claude", ASSISTANT, "claude", reply_to="1"),
    ]


def test_backend_label():
    assert output.backend_label("claude") == "Claude"
    assert output.backend_label("chatgpt") == "ChatGPT"
    assert output.backend_label("mistral") == "Mistral"


def test_format_tabs_marks_active():
    text = output.format_tabs(("claude", "chatgpt"), "chatgpt")
    assert "Claude" in text.plain
    assert "ChatGPT" in text.plain


def test_print_log_view_renders_markdown():
    with output.console.capture() as capture:
        output.print_log_view(_messages(), ("claude", "chatgpt"), "claude")
    rendered = capture.get()
    assert "You: hello" in rendered
    assert "Hi Claude" in rendered
    assert "**" not in rendered


def test_print_log_view_empty():
    with output.console.capture() as capture:
        output.print_log_view([], ("claude", "chatgpt"), "claude")
    assert "No messages yet." in capture.get()


def test_print_replies_side_by_side():
    replies = [
        Message("2", "Hi Claude", ASSISTANT, "claude", reply_to="1"),
        Message("3", ERROR_PLACEHOLDER, ASSISTANT, "chatgpt", reply_to="1"),
    ]
    with output.console.capture() as capture:
        output.print_replies(replies)
    rendered = capture.get()
    assert "Claude" in rendered
    assert "ChatGPT" in rendered


def test_print_replies_nothing_to_print():
    with output.console.capture() as capture:
        output.print_replies([])
    assert capture.get() == ""
