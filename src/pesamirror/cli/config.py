"""CLI: pesamirror config set|status|show|clear"""

import json
from pathlib import Path
from typing import Optional

import click
from rich.console import Console

from pesamirror.config_store import redact_private_key, validate_service_account_json
from pesamirror.errors import StorageShapeError

console = Console()


def _get_client():
    from pesamirror.cli.main import _get_client
    return _get_client()


def _run(coro):
    from pesamirror.cli.main import _run
    return _run(coro)


def _ensure_unlocked(client, passphrase=None):
    from pesamirror.cli.main import _ensure_unlocked
    return _ensure_unlocked(client, passphrase)


@click.group()
def config():
    """Remote push (FCM) settings."""


@config.command("set")
@click.option("--service-account", "service_account", required=True,
              type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help="Firebase service account JSON file")
@click.option("--device-token", required=True, help="FCM token shown in the Android app")
@click.option("--passphrase", default=None, help="Encrypt credentials at rest with this passphrase")
@click.option("--encrypt/--no-encrypt", default=False, help="Prompt for a passphrase")
def config_set(service_account: Path, device_token: str, passphrase: Optional[str], encrypt: bool):
    """Save service account and device token."""
    try:
        cfg = validate_service_account_json(service_account.read_text(), device_token)
    except StorageShapeError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1)

    if encrypt and not passphrase:
        passphrase = click.prompt("Passphrase", hide_input=True, confirmation_prompt=True)

    async def _save():
        client = _get_client()
        try:
            with console.status("Saving..."):
                await client.save_config(cfg, passphrase)
        finally:
            await client.close()

    _run(_save())
    state = "encrypted" if passphrase and passphrase.strip() else "plaintext"
    console.print(f"[green]Saved ({state}) for project {cfg.service_credential.project_id}.[/green]")


@config.command("status")
def config_status():
    """Show whether credentials are stored and whether they are locked."""
    client = _get_client()
    try:
        if client.is_encrypted():
            console.print("[green]Configured[/green] (encrypted — passphrase required)")
        elif client.load_config():
            console.print("[yellow]Configured[/yellow] (plaintext — consider `config set --encrypt`)")
        else:
            console.print("[yellow]Not configured. Run `pesamirror config set`.[/yellow]")
    finally:
        _run(client.close())


@config.command("show")
@click.option("--passphrase", default=None)
def config_show(passphrase: Optional[str]):
    """Print stored config with the private key redacted."""

    async def _show():
        client = _get_client()
        try:
            if not await _ensure_unlocked(client, passphrase):
                if not client.is_encrypted():
                    console.print("[yellow]Not configured.[/yellow]")
                raise SystemExit(1)
            cfg = client.load_config()
            sa_json = json.dumps(cfg.service_credential.model_dump(exclude_none=True), indent=2)
            click.echo(redact_private_key(sa_json))
            console.print(f"[bold]Device token:[/bold] {cfg.device_token}")
        finally:
            await client.close()

    _run(_show())


@config.command("clear")
@click.confirmation_option(prompt="Remove saved FCM credentials from this machine?")
def config_clear():
    """Remove stored credentials."""
    client = _get_client()
    client.clear_config()
    _run(client.close())
    console.print("[green]Cleared.[/green]")
