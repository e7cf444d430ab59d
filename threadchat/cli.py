"""Command-line interface: run the server or chat from a terminal."""

import asyncio
import signal

import click
from dotenv import load_dotenv

from .client import ChatApiClient
from .config import PROJECT_ROOT, Settings
from .errors import StoreError
from .logging_config import setup_logging
from .models import PROCESSING, SendOutcome, Status
from .orchestrator import Collaborators, SendOrchestrator

HELP_TEXT = """Commands:
  /attach PATH   attach a file to the next message
  /detach        drop the attached file
  /new           start a new chat
  /threads       list chats
  /open ID       switch to a chat
  /quit          exit
Ctrl-C while the assistant is answering stops the reply."""


class ClickNotifier:
    """Prints status and notifications to the terminal."""

    def status(self, status: Status) -> None:
        if status == PROCESSING:
            click.echo(click.style(status.message, dim=True))

    def notify(self, title: str, description: str, level: str = "info") -> None:
        color = "red" if level == "error" else "yellow"
        click.echo(click.style(f"{title}: {description}", fg=color), err=True)


def _echo_lines(lines: list[str]) -> None:
    for line in lines:
        role, _, body = line.partition(": ")
        color = "cyan" if role == "assistant" else None
        click.echo(click.style(f"{role}>", fg=color, bold=True) + f" {body}")


async def _send(orchestrator: SendOrchestrator) -> SendOutcome:
    """Submit the draft; SIGINT cancels the reply while it streams."""
    loop = asyncio.get_running_loop()
    before = len(orchestrator.transcript)
    loop.add_signal_handler(signal.SIGINT, orchestrator.cancel)
    try:
        outcome = await orchestrator.submit()
    finally:
        loop.remove_signal_handler(signal.SIGINT)

    # The user's own line is already on screen
    new_lines = orchestrator.transcript.render()[before:]
    _echo_lines([line for line in new_lines if not line.startswith("user: ")])
    return outcome


async def _list_threads(client: ChatApiClient) -> None:
    threads = await client.list_threads()
    if not threads:
        click.echo("No chats yet.")
    for thread in threads:
        click.echo(f"  {thread.id}  {thread.name}  ({thread.created_at:%Y-%m-%d %H:%M})")


async def _chat(base_url: str, thread_id: str | None) -> None:
    async with ChatApiClient(base_url) as client:
        notifier = ClickNotifier()
        orchestrator = SendOrchestrator(
            Collaborators.from_client(client), notifier=notifier
        )
        if thread_id:
            await orchestrator.open_thread(thread_id)
            _echo_lines(orchestrator.transcript.render())

        click.echo(HELP_TEXT)
        while True:
            try:
                line = await asyncio.to_thread(
                    click.prompt, "you", default="", show_default=False, prompt_suffix="> "
                )
            except click.Abort:
                break

            command, _, arg = line.strip().partition(" ")
            arg = arg.strip()
            if command == "/quit":
                break
            elif command == "/help":
                click.echo(HELP_TEXT)
            elif command == "/attach":
                selected = orchestrator.select_path(arg)
                if selected:
                    click.echo(f"Attached {selected.name} ({selected.kind.value})")
            elif command == "/detach":
                orchestrator.remove_file()
            elif command == "/new":
                await orchestrator.open_thread(None)
                click.echo("New chat.")
            elif command == "/open" and not arg:
                click.echo("Usage: /open ID")
            elif command in ("/threads", "/open"):
                try:
                    if command == "/threads":
                        await _list_threads(client)
                    else:
                        await orchestrator.open_thread(arg)
                        _echo_lines(orchestrator.transcript.render())
                except StoreError as e:
                    notifier.notify("Error", str(e), "error")
            else:
                orchestrator.draft = line
                await _send(orchestrator)


@click.group()
def cli():
    """threadchat: chat with an AI assistant, with files and history."""
    load_dotenv(PROJECT_ROOT / ".env")


@cli.command()
def serve():
    """Run the API server."""
    import uvicorn

    from .api import create_fastapi_app
    from .app import Application

    setup_logging()
    settings = Settings.from_env()
    app = create_fastapi_app(Application(settings))
    uvicorn.run(app, host=settings.api_host, port=settings.api_port, log_level="info")


@cli.command()
@click.option("--server", "base_url", default=None, help="API base URL")
@click.option("--thread", "thread_id", default=None, help="Continue an existing chat")
def chat(base_url: str | None, thread_id: str | None):
    """Interactive chat in the terminal."""
    setup_logging(console=False)
    base_url = base_url or Settings.from_env().public_base_url
    asyncio.run(_chat(base_url, thread_id))


@cli.command()
@click.option("--server", "base_url", default=None, help="API base URL")
def threads(base_url: str | None):
    """List chats, newest first."""
    setup_logging(console=False)
    base_url = base_url or Settings.from_env().public_base_url

    async def run():
        async with ChatApiClient(base_url) as client:
            await _list_threads(client)

    asyncio.run(run())


if __name__ == "__main__":
    cli()
