"""Rich console rendering of the conversation: side-by-side replies and per-backend tabs."""

import logging

from rich.columns import Columns
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.rule import Rule
from rich.text import Text

from duochat.models import ERROR_PLACEHOLDER, USER, Message

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

_LABELS = {"claude": "Claude", "chatgpt": "ChatGPT"}


def backend_label(backend: str) -> str:
    return _LABELS.get(backend, backend[:1].upper() + backend[1:])


def _assistant_panel(message: Message) -> Panel:
    failed = message.text == ERROR_PLACEHOLDER
    return Panel(
        Markdown(message.text),
        title=f"[bold]{backend_label(message.backend)}[/bold]",
        border_style="red" if failed else "cyan",
    )


def _user_line(message: Message) -> Text:
    return Text.assemble(("You: ", "bold blue"), message.text)


def format_tabs(backends: tuple[str, ...], active: str) -> Text:
    """Tab bar with the active backend highlighted."""
    text = Text()
    for i, backend in enumerate(backends):
        if i:
            text.append("  ")
        label = f" {backend_label(backend)} "
        text.append(label, style="reverse bold" if backend == active else "dim")
    return text


def print_replies(replies: list[Message]) -> None:
    """Print the assistant messages of one submission side by side."""
    if not replies:
        return
    console.print(Columns([_assistant_panel(m) for m in replies], equal=True, expand=True))


def print_log_view(messages: list[Message], backends: tuple[str, ...], active: str) -> None:
    """Print one backend's tab: every user message plus that backend's replies."""
    console.print(Rule(format_tabs(backends, active)))
    if not messages:
        console.print(Text("No messages yet.", style="dim"))
    for message in messages:
        if message.role == USER:
            console.print(_user_line(message))
        else:
            console.print(_assistant_panel(message))
