"""CLI entry point and argument parsing"""

import sys
import argparse
from rich.console import Console
import settings
from utils.logging_setup import setup_logging
from utils.storage import CredentialStorage
from cli import commands


console = Console()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Publish captured web content to Feishu documents")
    parser.add_argument("--debug", "-d", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--credentials",
        default=None,
        help="Credentials file (default: from config)"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    login = subparsers.add_parser("login", help="Open the relay login page")
    login.add_argument("--relay", default=None, help="OAuth relay URL (default: RELAY_ENDPOINT)")
    login.add_argument("--no-browser", action="store_true", help="Only print the login URL")

    import_token = subparsers.add_parser("import-token", help="Save the token JSON returned by the relay")
    import_token.add_argument("--relay", default=None, help="OAuth relay URL (default: RELAY_ENDPOINT)")
    import_token.add_argument("--json", dest="token_json", default=None, help="Token JSON (default: read stdin)")

    subparsers.add_parser("status", help="Show stored credential status")
    subparsers.add_parser("whoami", help="Show the authenticated Feishu user")
    subparsers.add_parser("folders", help="List destination folders")

    publish = subparsers.add_parser("publish", help="Publish a content file as a new document")
    publish.add_argument("--title", "-t", required=True, help="Document title")
    publish.add_argument("--file", "-f", dest="content_file", required=True,
                         help="Content file with inline ![alt](url) images, '-' for stdin")
    publish.add_argument("--folder", default=None, help="Destination folder token (default: My Space)")
    publish.add_argument("--dry-run", action="store_true", help="Only show how the content would be split")
    publish.add_argument(
        "--save-refreshed",
        action="store_true",
        help="Write credentials back if they were refreshed during the publish"
    )

    return parser


def main(argv=None):
    """Entry point for the CLI"""
    args = build_parser().parse_args(argv)

    setup_logging("debug" if args.debug else settings.LOG_LEVEL, settings.LOG_FILE or None)
    storage = CredentialStorage(args.credentials)

    try:
        if args.command == "login":
            code = commands.login(args.relay, console, open_browser=not args.no_browser)
        elif args.command == "import-token":
            code = commands.import_token(args.relay, args.token_json, storage, console)
        elif args.command == "status":
            code = commands.status(storage, console)
        elif args.command == "whoami":
            code = commands.whoami(storage, console)
        elif args.command == "folders":
            code = commands.folders(storage, console)
        else:
            code = commands.publish(
                args.title,
                args.content_file,
                args.folder,
                storage,
                console,
                dry_run=args.dry_run,
                save_refreshed=args.save_refreshed,
            )
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        code = 130
    except Exception as e:
        console.print(f"\n[red]Fatal error:[/red] {e}")
        if args.debug:
            import traceback
            traceback.print_exc()
        code = 1

    sys.exit(code)


if __name__ == "__main__":
    main()
