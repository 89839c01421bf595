"""
Realtime client CLI.

Command-line interface for running and inspecting the realtime client.
"""

import sys

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(
    name="realtime-client",
    help="Realtime Notification Client CLI",
    add_completion=False,
)
console = Console()


# =============================================================================
# Connection Commands
# =============================================================================

@app.command()
def listen(
    token: str = typer.Option(..., envvar="REALTIME_TOKEN", help="Bearer token of the user"),
    user_id: str = typer.Option(None, help="User id (fetched from the profile API if omitted)"),
):
    """Connect and log incoming events until interrupted."""
    import asyncio

    from ws_client.main import run_client

    console.print("[blue]Connecting to realtime service (Ctrl+C to stop)[/blue]")
    try:
        asyncio.run(run_client(token, user_id))
    except KeyboardInterrupt:
        console.print("[yellow]Stopped[/yellow]")


@app.command()
def auth_check(
    token: str = typer.Option(..., envvar="REALTIME_TOKEN", help="Bearer token of the user"),
    socket_id: str = typer.Option("123.456", help="Session id to authorize for"),
    user_id: str = typer.Option(None, help="User id (fetched from the profile API if omitted)"),
):
    """Request a private channel signature without opening a socket."""
    import asyncio

    from shared.config.settings import settings
    from shared.utils.exceptions import ProfileFetchError
    from ws_client.components.auth.channel_auth import ChannelAuthClient
    from ws_client.components.auth.profile import ProfileClient
    from ws_client.components.channels.subscriber import private_channel_name

    async def _check() -> bool:
        nonlocal user_id
        if not user_id:
            profile = ProfileClient(settings.profile_url, timeout=settings.profile_fetch_timeout)
            try:
                user_id = await profile.fetch_user_id(token)
            except ProfileFetchError as e:
                console.print(f"[red]✗ Profile fetch failed: {e}[/red]")
                return False
            finally:
                await profile.aclose()

        channel = private_channel_name(f"{settings.user_channel_prefix}{user_id}")
        auth = ChannelAuthClient(
            settings.auth_url,
            timeout=settings.ws_auth_timeout,
            origin=settings.auth_origin,
            accept_language=settings.auth_accept_language,
        )
        try:
            result = await auth.authorize(socket_id, channel, token)
        finally:
            await auth.aclose()

        table = Table(title="Channel Authorization")
        table.add_column("Field", style="cyan")
        table.add_column("Value", style="green")
        table.add_row("Channel", channel)
        table.add_row("Session", socket_id)
        table.add_row("Result", "✓ Authorized" if result.success else f"✗ {result.reason}")
        if result.signature:
            table.add_row("Signature", result.signature)
        if result.error_message:
            table.add_row("Error", result.error_message)
        console.print(table)
        return result.success

    if not asyncio.run(_check()):
        raise typer.Exit(1)


# =============================================================================
# Inspection Commands
# =============================================================================

@app.command()
def backoff():
    """Show the reconnect delay schedule."""
    from ws_client.components.resilience.retry import backoff_schedule, create_reconnect_scheduler

    scheduler = create_reconnect_scheduler()
    delays = backoff_schedule(scheduler.config)

    table = Table(title="Reconnect Schedule")
    table.add_column("Attempt", style="cyan")
    table.add_column("Delay (s)", style="green")
    table.add_column("Elapsed (s)", style="yellow")

    elapsed = 0.0
    for attempt, delay in enumerate(delays, start=1):
        elapsed += delay
        table.add_row(str(attempt), f"{delay:g}", f"{elapsed:g}")

    console.print(table)
    console.print(f"[blue]Reconnection is suspended after {len(delays)} attempts[/blue]")


@app.command()
def config():
    """Show the active configuration and production checks."""
    from shared.config.settings import settings

    table = Table(title="Realtime Client Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Socket URL", settings.ws_url)
    table.add_row("Auth URL", settings.auth_url)
    table.add_row("Profile URL", settings.profile_url)
    table.add_row("Heartbeat (s)", f"{settings.ws_heartbeat_interval:g}")
    table.add_row("Auth timeout (s)", f"{settings.ws_auth_timeout:g}")
    table.add_row("Environment", settings.environment)
    console.print(table)

    errors = settings.validate_production_settings()
    if errors:
        for error in errors:
            console.print(f"[red]✗ {error}[/red]")
        raise typer.Exit(1)
    console.print("[green]✓ Configuration OK[/green]")


@app.command()
def version():
    """Show version information."""
    table = Table(title="Realtime Client Version")
    table.add_column("Component", style="cyan")
    table.add_column("Version", style="green")

    table.add_row("Client", "1.0.0")
    table.add_row("Python", sys.version.split()[0])

    console.print(table)


if __name__ == "__main__":
    app()
