#!/usr/bin/env python3
"""Command-line front end for the HealthApp API."""

from __future__ import annotations

import asyncio
import json
from typing import Any, Awaitable, Callable, Optional, TypeVar

import httpx
import typer
from rich import print as rprint
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from healthapp.api import auth, appointments, medical_records, messages
from healthapp.api.auth import AuthError
from healthapp.api.client import ApiClient, SessionExpiredError
from healthapp.api.discovery import NetworkDiscovery
from healthapp.api.manager import ApiManager
from healthapp.log import configure_logging
from healthapp.models.user import RegisterCredentials
from healthapp.storage.config import DEFAULT_SETTINGS, AppSettings
from healthapp.storage.credentials import FileCredentialStore

T = TypeVar("T")

app = typer.Typer(help="HealthApp command-line client.")
console = Console()

api_options: dict[str, Any] = {}


def get_manager() -> ApiManager:
    settings = AppSettings.effective()
    settings.update({k: v for k, v in api_options.items() if v is not None})
    return ApiManager(store=FileCredentialStore(), settings=settings)


def run_with_client(fn: Callable[[ApiClient], Awaitable[T]]) -> T:
    """Run *fn* with the shared client, turning API failures into exit codes."""

    async def _main() -> T:
        async with get_manager() as manager:
            client = await manager.get_client()
            return await fn(client)

    try:
        return asyncio.run(_main())
    except SessionExpiredError:
        rprint("[bold red]Session expired. Please log in again.[/bold red]")
    except AuthError as exc:
        rprint(f"[bold red]{exc.message}[/bold red] ({exc.code})")
        for err in exc.errors or []:
            rprint(f"  - {err}")
    except httpx.HTTPStatusError as exc:
        rprint(
            f"[bold red]Request failed:[/bold red] HTTP {exc.response.status_code} "
            f"{exc.request.method} {exc.request.url.path}"
        )
    except httpx.TransportError as exc:
        rprint(f"[bold red]Unable to reach the server:[/bold red] {exc}")
    raise typer.Exit(code=1)


@app.callback()
def main(
    api_url: Optional[str] = typer.Option(
        None, "--api-url", "-u", help="Backend base URL (skips network discovery)"
    ),
    timeout_ms: Optional[int] = typer.Option(
        None, "--timeout-ms", help="Per-request timeout in milliseconds"
    ),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug logging"),
):
    global api_options
    configure_logging(debug or bool(AppSettings.get("debug", False)))
    api_options = dict(api_url=api_url, timeout_ms=timeout_ms)


# ---------------------------------------------------------------------------
# Account
# ---------------------------------------------------------------------------


@app.command()
def login(
    email: str = typer.Option(..., prompt=True, help="Account email"),
    password: str = typer.Option(..., prompt=True, hide_input=True, help="Account password"),
):
    """Log in and store the session locally."""
    result = run_with_client(lambda client: auth.login(client, email, password))
    rprint(
        f"[bold green]Logged in[/bold green] as {result.user.full_name} "
        f"([cyan]{result.user.role}[/cyan])"
    )


@app.command()
def register(
    email: str = typer.Option(..., prompt=True),
    password: str = typer.Option(..., prompt=True, hide_input=True, confirmation_prompt=True),
    first_name: str = typer.Option(..., prompt=True),
    last_name: str = typer.Option(..., prompt=True),
    role: str = typer.Option("patient", help="patient, doctor or admin"),
):
    """Create an account and log in."""
    credentials = RegisterCredentials(
        email=email, password=password, firstName=first_name, lastName=last_name, role=role
    )
    result = run_with_client(lambda client: auth.register(client, credentials))
    rprint(f"[bold green]Registered[/bold green] {result.user.email}")


@app.command()
def logout():
    """End the session on the server and forget it locally."""
    run_with_client(auth.logout)
    rprint("[bold green]Logged out.[/bold green]")


@app.command()
def whoami(
    remote: bool = typer.Option(False, help="Ask the server instead of the local cache"),
):
    """Show the logged-in user."""
    if remote:
        user = run_with_client(auth.current_user)
    else:
        state = auth.restore_session(FileCredentialStore())
        if not state.isAuthenticated or state.user is None:
            rprint("[bold red]Not logged in.[/bold red]")
            raise typer.Exit(code=1)
        user = state.user
    rprint(
        Panel.fit(
            f"{user.full_name}\n{user.email}",
            title="[bold green]User[/bold green]",
            subtitle=f"[bold cyan]{user.role}[/bold cyan]",
        )
    )


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@app.command(name="appointments")
def list_appointments(
    upcoming: bool = typer.Option(False, help="Only upcoming appointments"),
    doctor: bool = typer.Option(False, help="List as a doctor"),
):
    """List appointments."""
    if doctor:
        fetch = appointments.list_doctor_appointments
    elif upcoming:
        fetch = appointments.list_upcoming_appointments
    else:
        fetch = appointments.list_patient_appointments
    items = run_with_client(fetch)
    if not items:
        rprint("[bold red]No appointments found.[/bold red]")
        return

    table = Table(title="Appointments")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("When", style="magenta")
    table.add_column("With", style="green")
    table.add_column("Status")
    for item in items:
        other = item.patientName if doctor else item.doctorName
        table.add_row(str(item.id), item.when, other or "", item.status or "")
    console.print(table)


@app.command()
def records(doctor: bool = typer.Option(False, help="List records written as a doctor")):
    """List medical records."""
    fetch = (
        medical_records.list_doctor_records if doctor else medical_records.list_patient_records
    )
    items = run_with_client(fetch)
    if not items:
        rprint("[bold red]No medical records found.[/bold red]")
        return

    table = Table(title="Medical records")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Date", style="magenta")
    table.add_column("Diagnosis", style="green")
    for item in items:
        table.add_row(str(item.id), item.date or "", item.diagnosis or "")
    console.print(table)


# ---------------------------------------------------------------------------
# Messaging
# ---------------------------------------------------------------------------


@app.command()
def conversations():
    """List conversations with unread counts."""
    items = run_with_client(messages.list_conversations)
    if not items:
        rprint("[bold red]No conversations.[/bold red]")
        return
    table = Table(title="Conversations")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("With", style="green")
    table.add_column("Last message")
    table.add_column("Unread", justify="right")
    for conv in items:
        name = conv.participant.display_name if conv.participant else ""
        last = conv.lastMessage.content if conv.lastMessage else ""
        table.add_row(str(conv.id), name, last, str(conv.unreadCount))
    console.print(table)


@app.command()
def send(recipient_id: str, content: str):
    """Send a message to another user."""
    message = run_with_client(lambda client: messages.send_message(client, recipient_id, content))
    rprint(f"[bold green]Sent[/bold green] (message {message.id})")


@app.command()
def watch(
    conversation_id: str,
    interval: float = typer.Option(
        DEFAULT_SETTINGS["message_poll_interval"], help="Seconds between polls"
    ),
    max_polls: Optional[int] = typer.Option(None, help="Stop after this many polls"),
):
    """Print new messages of a conversation as they arrive."""

    async def _watch(client: ApiClient) -> None:
        async for message in messages.poll_messages(
            client, conversation_id, interval=interval, max_polls=max_polls
        ):
            rprint(f"[dim]{message.createdAt or ''}[/dim] [cyan]{message.senderId}[/cyan]: {message.content}")

    try:
        run_with_client(_watch)
    except KeyboardInterrupt:
        rprint("[dim]Stopped watching.[/dim]")


# ---------------------------------------------------------------------------
# Raw access and setup
# ---------------------------------------------------------------------------


@app.command()
def request(
    method: str,
    path: str,
    data: Optional[str] = typer.Option(None, help="JSON request body"),
):
    """Send an authenticated request and print the JSON response."""
    body = json.loads(data) if data else None

    async def _send(client: ApiClient) -> Any:
        resp = await client.request(method.upper(), path, json=body)
        return resp.json() if resp.content else None

    console.print_json(data=run_with_client(_send))


@app.command()
def discover(save: bool = typer.Option(False, help="Save the result as api_url")):
    """Look for the backend on the local network."""
    settings = AppSettings.effective()
    discovery = NetworkDiscovery(
        store=FileCredentialStore(), hosts=settings.get("discovery_hosts") or ()
    )
    base_url = asyncio.run(discovery.resolve_base_url())
    rprint(f"Backend URL: [bold cyan]{base_url}[/bold cyan]")
    if save:
        AppSettings.set("api_url", base_url)
        rprint("[green]Saved.[/green]")


@app.command()
def settings(
    key: Optional[str] = typer.Argument(None),
    value: Optional[str] = typer.Argument(None, help="JSON value (plain strings allowed)"),
):
    """Show settings, one setting, or set one."""
    if key is None:
        console.print_json(data=AppSettings.load())
        return
    if key not in DEFAULT_SETTINGS:
        rprint(f"[bold red]Unknown setting:[/bold red] {key}")
        raise typer.Exit(code=1)
    if value is None:
        console.print_json(data={key: AppSettings.get(key)})
        return
    try:
        parsed = json.loads(value)
    except ValueError:
        parsed = value
    AppSettings.set(key, parsed)
    rprint(f"[green]{key}[/green] = {parsed!r}")


if __name__ == "__main__":
    app()
