"""Click CLI: builds the gateway and transport, then runs chat, ask, serve or check."""

import asyncio
import logging
import sys

import click
import uvicorn
from dotenv import load_dotenv
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from config.config_loader import MERGE_POLICIES, AppConfig, load_config
from duochat.api import create_app
from duochat.gateway import DispatchGateway, EmptyMessageError, InvalidTargetError
from duochat.healthcheck import run_health_checks
from duochat.models import Message
from duochat.orchestrator import Orchestrator
from duochat.output import backend_label, console, print_log_view, print_replies
from duochat.providers.factory import build_providers
from duochat.transport import HttpTransport, LocalTransport, Transport

logger = logging.getLogger(__name__)

_QUIT_COMMANDS = {"quit", "exit", "q"}


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def _build_gateway(config: AppConfig) -> DispatchGateway:
    return DispatchGateway(build_providers(config), known_targets=config.backends)


def _local_gateway(config: AppConfig) -> DispatchGateway:
    gateway = _build_gateway(config)
    if not gateway.configured_targets:
        console.print("[bold red]Error:[/bold red] No backends available. Check API keys in .env.")
        sys.exit(1)
    return gateway


def _build_transport(config: AppConfig, gateway_url: str | None) -> Transport:
    """HTTP transport when a gateway URL is given, otherwise an in-process gateway."""
    if gateway_url:
        return HttpTransport(gateway_url, timeout=config.defaults.request_timeout_sec)
    return LocalTransport(_local_gateway(config))


def _parse_command(line: str) -> tuple[str, str] | None:
    """'/tab chatgpt' -> ('tab', 'chatgpt'). Returns None for ordinary input."""
    stripped = line.strip()
    if not stripped.startswith("/"):
        return None
    name, _, arg = stripped[1:].partition(" ")
    return name.lower(), arg.strip().lower()


def _print_health(results: dict[str, tuple[bool, str]]) -> list[str]:
    """Print one OK/FAIL line per backend. Returns the failed backend names."""
    failed = []
    for name, (ok, err) in results.items():
        if ok:
            console.print(f"  [green]OK  [/green] {name}")
        else:
            short_err = err.splitlines()[0][:120] if err else "unknown error"
            console.print(f"  [red]FAIL[/red] {name}: {short_err}")
            failed.append(name)
    return failed


async def _check_backends(gateway: DispatchGateway) -> bool:
    """Ping every backend. Returns False when some fail and the user declines to continue."""
    console.print("\n[bold]Checking backends...[/bold]")
    failed = _print_health(await run_health_checks(gateway))

    if not failed:
        console.print()
        return True

    console.print(
        f"\n[yellow]{len(failed)} backend(s) failed:[/yellow] {', '.join(failed)}. "
        "Every submission will show an error until they recover."
    )
    if not click.confirm("Continue anyway?", default=False):
        return False
    console.print()
    return True


async def _submit_with_spinner(orchestrator: Orchestrator, text: str) -> list[Message]:
    labels = " and ".join(backend_label(b) for b in orchestrator.backends)
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    ) as progress:
        progress.add_task(f"Waiting for {labels}...", total=None)
        return await orchestrator.submit_and_wait(text)


async def _chat_loop(orchestrator: Orchestrator) -> None:
    print_log_view(orchestrator.visible_messages(), orchestrator.backends, orchestrator.active_backend)
    console.print("[dim]Type a message, /tab <name> to switch view, /quit to leave.[/dim]")

    while True:
        line = click.prompt("You", default="", show_default=False, prompt_suffix="> ")
        command = _parse_command(line)
        if command is not None:
            name, arg = command
            if name in _QUIT_COMMANDS:
                return
            if name == "tab":
                try:
                    orchestrator.select_backend(arg)
                except InvalidTargetError:
                    console.print(
                        f"[yellow]Unknown backend[/yellow] '{arg}'. "
                        f"Choose one of: {', '.join(orchestrator.backends)}"
                    )
                    continue
                print_log_view(
                    orchestrator.visible_messages(), orchestrator.backends, orchestrator.active_backend
                )
                continue
            console.print(f"[yellow]Unknown command[/yellow] /{name}")
            continue

        try:
            replies = await _submit_with_spinner(orchestrator, line)
        except EmptyMessageError:
            continue
        print_replies(replies)


async def _run_chat(
    orchestrator: Orchestrator,
    transport: Transport,
    gateway_to_check: DispatchGateway | None = None,
) -> None:
    try:
        if gateway_to_check is not None and not await _check_backends(gateway_to_check):
            return
        await _chat_loop(orchestrator)
    finally:
        await transport.aclose()


async def _run_ask(orchestrator: Orchestrator, transport: Transport, message: str) -> list[Message]:
    try:
        return await _submit_with_spinner(orchestrator, message)
    finally:
        await transport.aclose()


def _make_orchestrator(config: AppConfig, transport: Transport, backend: str | None, policy: str | None) -> Orchestrator:
    active = backend or config.defaults.active_backend
    if active not in config.backends:
        console.print(
            f"[bold red]Error:[/bold red] Unknown backend '{active}'. "
            f"Choose one of: {', '.join(config.backends)}"
        )
        sys.exit(1)
    return Orchestrator(
        transport,
        backends=config.backends,
        active_backend=active,
        merge_policy=policy or config.defaults.merge_policy,
    )


_gateway_url_option = click.option(
    "--gateway-url",
    envvar="DUOCHAT_GATEWAY_URL",
    default=None,
    help="POST endpoint of a running gateway (default: in-process gateway)",
)
_backend_option = click.option("--backend", default=None, help="Backend view to start on (default: from config)")
_policy_option = click.option(
    "--policy",
    type=click.Choice(MERGE_POLICIES),
    default=None,
    help="How failures are merged: one shared placeholder, or one per backend",
)
_skip_check_option = click.option(
    "--skip-health-check", is_flag=True, default=False, help="Skip the API connectivity check at startup"
)


@click.group()
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """duochat -- send one message to Claude and ChatGPT, compare the answers.

    \b
    Examples:
      duochat chat
      duochat chat --backend chatgpt --policy independent
      duochat ask "Explain CRDTs in two sentences"
      duochat serve --port 8000
      duochat chat --gateway-url http://127.0.0.1:8000/api/chat
    """
    # Model responses contain Unicode that the Windows ANSI path cannot encode otherwise.
    if sys.platform == "win32":
        if hasattr(sys.stdout, "reconfigure"):
            sys.stdout.reconfigure(encoding="utf-8", errors="replace")
        if hasattr(sys.stderr, "reconfigure"):
            sys.stderr.reconfigure(encoding="utf-8", errors="replace")

    load_dotenv()
    _setup_logging(verbose)

    try:
        ctx.obj = load_config()
    except (FileNotFoundError, ValueError) as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        sys.exit(1)


@main.command()
@_gateway_url_option
@_backend_option
@_policy_option
@_skip_check_option
@click.pass_obj
def chat(
    config: AppConfig,
    gateway_url: str | None,
    backend: str | None,
    policy: str | None,
    skip_health_check: bool,
) -> None:
    """Interactive chat; each message goes to every backend."""
    effective_url = gateway_url or config.defaults.gateway_url
    gateway_to_check = None
    if effective_url:
        transport = _build_transport(config, effective_url)
    else:
        gateway = _local_gateway(config)
        if not skip_health_check:
            gateway_to_check = gateway
        transport = LocalTransport(gateway)

    orchestrator = _make_orchestrator(config, transport, backend, policy)
    asyncio.run(_run_chat(orchestrator, transport, gateway_to_check))


@main.command()
@click.argument("message")
@_gateway_url_option
@_policy_option
@click.pass_obj
def ask(config: AppConfig, message: str, gateway_url: str | None, policy: str | None) -> None:
    """Send one MESSAGE to every backend and print the replies side by side."""
    transport = _build_transport(config, gateway_url or config.defaults.gateway_url)
    orchestrator = _make_orchestrator(config, transport, None, policy)
    try:
        replies = asyncio.run(_run_ask(orchestrator, transport, message))
    except EmptyMessageError:
        console.print("[bold red]Error:[/bold red] Message is required.")
        sys.exit(1)
    print_replies(replies)


@main.command()
@click.option("--host", default=None, help="Bind address (default: from config)")
@click.option("--port", default=None, type=int, help="Port (default: from config)")
@click.pass_obj
def serve(config: AppConfig, host: str | None, port: int | None) -> None:
    """Run the dispatch gateway over HTTP."""
    gateway = _build_gateway(config)
    if not gateway.configured_targets:
        console.print("[yellow]Warning:[/yellow] No backends configured; every request will fail with 503.")
    uvicorn.run(
        create_app(gateway),
        host=host or config.server.host,
        port=port or config.server.port,
        log_config=None,
    )


@main.command()
@click.pass_obj
def check(config: AppConfig) -> None:
    """Ping every backend once and report which ones answer."""
    if _print_health(asyncio.run(run_health_checks(_build_gateway(config)))):
        sys.exit(1)


if __name__ == "__main__":
    main()
