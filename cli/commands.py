"""Command handlers for the CLI"""

import asyncio
import logging
import sys
import webbrowser
from pathlib import Path
from typing import Optional

from rich.console import Console

import settings
from errors import FeishuError, SessionExpiredError
from feishu import CreateDocumentRequest, FeishuDocumentService, render_segments, segment_content
from oauth import CredentialSnapshot, TokenLifecycleManager, parse_token_json, relay_login_url, validate_relay_endpoint
from utils.storage import CredentialStorage
from cli.status_display import show_completion, show_credential_status

logger = logging.getLogger(__name__)


def _resolve_relay(relay: Optional[str]) -> str:
    return (relay or settings.RELAY_ENDPOINT or "").strip()


def _load_credentials(storage: CredentialStorage, console: Console) -> Optional[CredentialSnapshot]:
    snapshot = storage.load()
    if snapshot is None:
        console.print("[red]No Feishu credentials found.[/red] Run: python cli.py import-token --relay <url>")
        return None
    if not snapshot.relay_endpoint and settings.RELAY_ENDPOINT:
        snapshot = CredentialSnapshot(
            access_token=snapshot.access_token,
            refresh_token=snapshot.refresh_token,
            expires_at=snapshot.expires_at,
            relay_endpoint=settings.RELAY_ENDPOINT,
        )
    return snapshot


def login(relay: Optional[str], console: Console, open_browser: bool = True) -> int:
    """Show (and open) the relay page that starts the Feishu login"""
    relay = _resolve_relay(relay)
    if not validate_relay_endpoint(relay):
        console.print("[red]ERROR:[/red] A valid relay URL is required (--relay or RELAY_ENDPOINT)")
        return 1

    url = relay_login_url(relay)
    console.print(f"Open this page to login to Feishu:\n  [cyan]{url}[/cyan]")
    console.print("Then paste the JSON it returns into: python cli.py import-token")
    if open_browser:
        webbrowser.open(url)
    return 0


def import_token(relay: Optional[str], token_json: Optional[str], storage: CredentialStorage,
                 console: Console) -> int:
    """Save the token JSON returned by the relay"""
    relay = _resolve_relay(relay)
    if not validate_relay_endpoint(relay):
        console.print("[red]ERROR:[/red] A valid relay URL is required (--relay or RELAY_ENDPOINT)")
        return 1

    if token_json is None:
        console.print("[dim]Paste the token JSON, then press Ctrl-D[/dim]")
        token_json = sys.stdin.read()

    try:
        snapshot = parse_token_json(token_json, relay)
    except ValueError as e:
        console.print(f"[red]ERROR:[/red] {e}")
        return 1

    storage.save(snapshot)
    console.print(f"[green]✓ Credentials saved[/green] to {storage.credentials_file}")
    return 0


def status(storage: CredentialStorage, console: Console) -> int:
    show_credential_status(storage, console)
    return 0


def _run_with_service(storage: CredentialStorage, console: Console, action, save_refreshed: bool = False) -> int:
    snapshot = _load_credentials(storage, console)
    if snapshot is None:
        return 1

    async def runner():
        async with FeishuDocumentService(TokenLifecycleManager(snapshot)) as service:
            try:
                return await action(service)
            finally:
                refreshed = service.token_manager.snapshot
                if save_refreshed and refreshed != snapshot:
                    storage.save(refreshed)
                    logger.info("Saved refreshed credentials")

    try:
        asyncio.run(runner())
    except SessionExpiredError as e:
        console.print(f"[red]Session expired:[/red] {e}")
        return 1
    except FeishuError as e:
        console.print(f"[red]Feishu error:[/red] {e}")
        return 1
    return 0


def whoami(storage: CredentialStorage, console: Console) -> int:
    async def action(service: FeishuDocumentService):
        info = await service.get_user_info()
        console.print(f"[bold]{info.name or 'Unknown user'}[/bold]  {info.description}")
        if info.avatar:
            console.print(f"  Avatar: {info.avatar}")
        console.print(f"  Home: {info.home_page}")

    return _run_with_service(storage, console, action)


def folders(storage: CredentialStorage, console: Console) -> int:
    async def action(service: FeishuDocumentService):
        for repository in await service.get_repositories():
            console.print(f"{repository.id}\t{repository.name} ({repository.group_name})")

    return _run_with_service(storage, console, action)


def publish(title: str, content_file: str, folder: Optional[str], storage: CredentialStorage,
            console: Console, dry_run: bool = False, save_refreshed: bool = False) -> int:
    """Publish a content file (``-`` for stdin) as a new Feishu document"""
    if content_file == "-":
        content = sys.stdin.read()
    else:
        path = Path(content_file)
        if not path.exists():
            console.print(f"[red]ERROR:[/red] File not found: {path}")
            return 1
        content = path.read_text(encoding="utf-8")

    if dry_run:
        segments = segment_content(content)
        images = sum(1 for segment in segments if segment.kind == "image")
        console.print(f"[bold]{title}[/bold]: {len(segments)} block(s), {images} image(s)")
        console.print(render_segments(segments), markup=False, highlight=False)
        return 0

    async def action(service: FeishuDocumentService):
        repository_id = folder
        if not repository_id:
            repository_id = (await service.get_repositories())[0].id
        record = await service.create_document(
            CreateDocumentRequest(title=title, content=content, repository_id=repository_id)
        )
        show_completion(record, console)

    return _run_with_service(storage, console, action, save_refreshed=save_refreshed)
