"""Status display functionality for CLI"""

from rich.table import Table
from utils.storage import CredentialStorage


def show_credential_status(storage: CredentialStorage, console):
    """
    Display stored credential status

    Args:
        storage: CredentialStorage instance
        console: Rich console for output
    """
    status = storage.get_status()

    table = Table(title="Feishu Credentials")
    table.add_column("Property", style="cyan")
    table.add_column("Value")

    table.add_row("Has Tokens", "Yes" if status["has_tokens"] else "No")
    table.add_row("Is Expired", "Yes" if status["is_expired"] else "No")

    if status["expires_at"]:
        table.add_row("Expires At", status["expires_at"])
    table.add_row("Time Until Expiry", status["time_until_expiry"])
    table.add_row("Relay", status["relay_endpoint"] or "[dim]not set[/dim]")
    table.add_row("Can Refresh", "Yes" if status["can_refresh"] else "No")
    table.add_row("Credentials File", str(storage.credentials_file))

    console.print(table)


def show_completion(record, console):
    """
    Display the outcome of a publish

    Args:
        record: CompletionRecord returned by the document service
        console: Rich console for output
    """
    console.print(f"[green]✓ Published[/green] {record.href}")
    console.print(f"  Document: {record.document_id}  Folder: {record.repository_id}")

    if not record.images:
        return

    table = Table(title="Images")
    table.add_column("#", justify="right")
    table.add_column("Source")
    table.add_column("Result")
    for index, image in enumerate(record.images, start=1):
        if image.status == "uploaded":
            result = "[green]uploaded[/green]"
        else:
            result = f"[red]omitted[/red] {image.reason}"
        table.add_row(str(index), image.source_url, result)
    console.print(table)
