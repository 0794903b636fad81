"""
PesaMirror CLI — `pesamirror` command.

Commands:
  pesamirror config set|status|show|clear   Manage FCM credentials
  pesamirror send <mode> [options]          Push a USSD trigger to the device
  pesamirror body <mode> [options]          Print the trigger body (for SMS)
"""

import asyncio

try:
    import click
    from rich.console import Console
except ImportError:
    raise SystemExit("CLI requires extras: pip install pesamirror[cli]")

from pesamirror.client import AsyncPesaMirror
from pesamirror.storage import FileStore

console = Console()


def _get_client() -> AsyncPesaMirror:
    return AsyncPesaMirror(durable=FileStore())


def _run(coro):
    return asyncio.run(coro)


async def _ensure_unlocked(client: AsyncPesaMirror, passphrase=None) -> bool:
    """Prompt for the passphrase when stored config is encrypted. Returns False if locked."""
    if client.load_config() is not None:
        return True
    if not client.is_encrypted():
        return False
    if passphrase is None:
        passphrase = click.prompt("Passphrase", hide_input=True)
    with console.status("Unlocking..."):
        ok = await client.unlock(passphrase)
    if not ok:
        console.print("[red]Wrong passphrase or invalid stored data.[/red]")
    return ok


@click.group()
@click.version_option("0.1.0")
def main():
    """PesaMirror CLI — trigger M-Pesa USSD flows on your phone remotely."""


# Register subcommands from separate modules
from pesamirror.cli.config import config
from pesamirror.cli.send import body_cmd, send_cmd

main.add_command(config)
main.add_command(send_cmd)
main.add_command(body_cmd)


if __name__ == "__main__":
    main()
