"""
Ticket Login Client

Logs in against a ticket endpoint and resolves a second factor if required.
"""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

from rich.console import Console
from rich.prompt import Prompt
from rich.table import Table

from ticketauth.ceremony.fido2_device import Fido2DeviceCeremony
from ticketauth.challenge.decoder import decode
from ticketauth.challenge.orchestrator import ChallengeOrchestrator
from ticketauth.config import load_config
from ticketauth.core.exceptions import AuthError
from ticketauth.core.types import (
    Credentials,
    OrchestratorState,
    OutcomeStatus,
    TfaMethod,
)
from ticketauth.login import LoginFlow
from ticketauth.logging_setup import setup_logging

logger = logging.getLogger(__name__)

console = Console()

METHOD_LABELS = {
    TfaMethod.WEBAUTHN: "WebAuthn security key",
    TfaMethod.TOTP: "TOTP App",
    TfaMethod.RECOVERY: "Recovery Key",
}


def parse_args():
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(description="Ticket login with second factor")

    subparsers = parser.add_subparsers(dest="command", required=True)

    login_parser = subparsers.add_parser("login", help="Log in and print the session")
    login_parser.add_argument("--username", help="User name without realm")
    login_parser.add_argument("--realm", help="Authentication realm (default from config)")
    login_parser.add_argument("--config", default="config.json", help="Config file path")
    login_parser.add_argument("--log-file", type=Path, help="Write debug log to file")
    login_parser.add_argument("-v", "--verbose", action="store_true", help="Log to console")

    decode_parser = subparsers.add_parser("decode", help="Show a pending challenge ticket")
    decode_parser.add_argument("ticket", help="Ticket starting with <PRODUCT>:!tfa!")

    return parser.parse_args()


def show_challenge(orchestrator: ChallengeOrchestrator):
    """Print available methods and recovery key state"""
    table = Table(title="Second login factor required")
    table.add_column("Method", style="cyan")
    table.add_column("Key", style="magenta")
    table.add_column("Available")

    for method in TfaMethod.by_priority():
        available = method in orchestrator.available_methods
        table.add_row(METHOD_LABELS[method], method.tag, "yes" if available else "-")

    console.print(table)

    if orchestrator.recovery_hint:
        console.print(orchestrator.recovery_hint)
    if orchestrator.recovery_low:
        console.print(
            "[yellow]Less than 4 recovery keys available. "
            "Please generate a new set after login![/yellow]"
        )


def choose_method(orchestrator: ChallengeOrchestrator) -> None:
    tags = [m.tag for m in orchestrator.available_methods]
    tag = Prompt.ask("Method", choices=tags, default=orchestrator.active_method.tag)
    orchestrator.select_method(TfaMethod[tag.upper()])


async def wait_for_security_key(orchestrator: ChallengeOrchestrator) -> None:
    """Wait for the ceremony, Ctrl+C aborts it and returns to method selection"""
    console.print("Please insert your authentication device and press its button")
    console.print("[dim]Waiting for second factor... (Ctrl+C to choose another method)[/dim]")

    loop = asyncio.get_running_loop()
    interrupted = asyncio.Event()
    try:
        loop.add_signal_handler(signal.SIGINT, interrupted.set)
    except NotImplementedError:
        pass

    ceremony = asyncio.create_task(orchestrator.wait_ceremony())
    interrupt = asyncio.create_task(interrupted.wait())
    try:
        await asyncio.wait({ceremony, interrupt}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        interrupt.cancel()
        try:
            loop.remove_signal_handler(signal.SIGINT)
        except NotImplementedError:
            pass

    if interrupted.is_set() and orchestrator.ceremony_pending:
        orchestrator.cancel_ceremony()
        ceremony.cancel()


async def drive_challenge(orchestrator: ChallengeOrchestrator) -> None:
    """Translate console input into orchestrator calls"""
    show_challenge(orchestrator)

    while orchestrator.state is OrchestratorState.AWAITING_FACTOR:
        method = orchestrator.active_method

        if method is TfaMethod.WEBAUTHN:
            if orchestrator.ceremony_pending:
                await wait_for_security_key(orchestrator)
                continue
            answer = Prompt.ask(
                f"{orchestrator.confirm_text}? (Enter retries, 'm' switch method, 'q' cancel)",
                default="",
                show_default=False,
            )
            if answer == "q":
                return
            if answer == "m":
                choose_method(orchestrator)
                continue
            # the next pass waits for it with Ctrl+C handling
            orchestrator.start_ceremony()
            continue

        label = "TOTP verification code" if method is TfaMethod.TOTP else "recovery key"
        answer = Prompt.ask(
            f"Enter your {label} ('m' switch method, empty to cancel)",
            default="",
            show_default=False,
        )
        if not answer:
            return
        if answer == "m":
            choose_method(orchestrator)
            continue

        if not orchestrator.set_input(answer):
            console.print(f"[red]{orchestrator.handler(method).validation_error}[/red]")
            continue
        await orchestrator.confirm()


async def run_login(args) -> int:
    config = load_config(args.config)
    setup_logging(args.log_file, verbose=args.verbose)

    username = args.username or Prompt.ask("User name")
    realm = args.realm or config.default_realm
    password = Prompt.ask("Password", password=True)

    ceremony = Fido2DeviceCeremony(config.origin)
    flow = LoginFlow.from_config(config, ceremony=ceremony)

    try:
        outcome = await flow.run(Credentials(username, password, realm), drive_challenge)
    finally:
        await flow.endpoint.close()

    if outcome.status is OutcomeStatus.SUCCESS:
        session = outcome.session
        console.print(f"[green]Logged in as {session.username}[/green]")
        console.print(f"CSRF token: {'present' if session.csrf_token else 'missing'}")
        return 0
    if outcome.status is OutcomeStatus.CANCELLED:
        console.print("[yellow]Login cancelled[/yellow]")
        return 130

    console.print(f"[red]{outcome.error}[/red]")
    return 1


def run_decode(args) -> int:
    try:
        payload = decode(args.ticket)
    except AuthError as e:
        console.print(f"[red]{e}[/red]")
        return 1

    console.print_json(
        data={
            "webauthn": payload.webauthn,
            "totp": payload.totp,
            "recovery": payload.recovery,
        }
    )
    console.print(f"Methods: {', '.join(m.tag for m in payload.available())}")
    if payload.recovery_low:
        console.print("[yellow]Recovery keys running low[/yellow]")
    return 0


async def main() -> int:
    """Main entry point"""
    args = parse_args()

    if args.command == "decode":
        return run_decode(args)

    try:
        return await run_login(args)
    except AuthError as e:
        logger.error(f"Login aborted: {e}")
        console.print(f"[red]{e}[/red]")
        return 1


def cli():
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        console.print("\n[yellow]Login cancelled[/yellow]")
        sys.exit(130)


if __name__ == "__main__":
    cli()
