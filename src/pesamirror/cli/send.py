"""CLI: pesamirror send|body <mode>"""

from typing import Optional

import click
import httpx
from rich.console import Console

from pesamirror.client import MSG_NOT_CONFIGURED, MSG_PUSH_FAILED
from pesamirror.errors import InvalidIntent, NetworkError
from pesamirror.models.intent import TransactionMode
from pesamirror.payload import MODE_CODES, build_body

console = Console()

MODES = [m.value for m in MODE_CODES]


def _get_client():
    from pesamirror.cli.main import _get_client
    return _get_client()


def _run(coro):
    from pesamirror.cli.main import _run
    return _run(coro)


def _ensure_unlocked(client, passphrase=None):
    from pesamirror.cli.main import _ensure_unlocked
    return _ensure_unlocked(client, passphrase)


def _transaction_options(f):
    for decorator in reversed([
        click.argument("mode", type=click.Choice(MODES, case_sensitive=False)),
        click.option("--amount", required=True),
        click.option("--phone", default="", help="SEND_MONEY / POCHI recipient"),
        click.option("--till", default="", help="TILL number"),
        click.option("--business", default="", help="PAYBILL business number"),
        click.option("--account", default="", help="PAYBILL account number"),
        click.option("--agent", default="", help="WITHDRAW agent number"),
        click.option("--store", default="", help="WITHDRAW store number"),
    ]):
        f = decorator(f)
    return f


def _encode(mode: str, fields: dict) -> str:
    try:
        return build_body(TransactionMode(mode.upper()), fields)
    except InvalidIntent as e:
        hint = f" (missing --{e.field})" if e.field else ""
        console.print(f"[red]{e}{hint}[/red]")
        raise SystemExit(1)


@click.command("body")
@_transaction_options
def body_cmd(mode, **fields):
    """Print the trigger body (send it by SMS to the device running the app)."""
    click.echo(_encode(mode, fields))


@click.command("send")
@_transaction_options
@click.option("--passphrase", default=None, help="Unlock encrypted credentials")
def send_cmd(mode, passphrase: Optional[str], **fields):
    """Push a USSD trigger to the remote device via FCM."""
    body = _encode(mode, fields)

    async def _send():
        client = _get_client()
        try:
            if not await _ensure_unlocked(client, passphrase):
                console.print(f"[red]{MSG_NOT_CONFIGURED}[/red]")
                raise SystemExit(1)
            with console.status("Sending push..."):
                await client.trigger_body(body)
        except (NetworkError, httpx.HTTPError) as e:
            console.print(f"[red]{MSG_PUSH_FAILED}[/red]")
            console.print(f"[dim]{e}[/dim]")
            raise SystemExit(1)
        finally:
            await client.close()
        console.print(f"[green]Push sent to device.[/green] [dim]{body}[/dim]")

    _run(_send())
