"""Command-line entry point for fell"""

import sys
from typing import List, Optional

from rich.console import Console

from fell.cli.args import parse_args
from fell.config import Config
from fell.core import CommandSummary, Fleet
from fell.exceptions import FellError
from fell.logging_config import setup_logging
from fell.services.display_service import DisplayService

console = Console()


def run_command(fleet: Fleet, args) -> CommandSummary:
    """Dispatch parsed arguments to the matching Fleet handler."""
    command = args.command
    if command == "branch":
        return fleet.branch()
    if command == "status":
        return fleet.status()
    if command == "sync":
        return fleet.sync()
    if command == "commit":
        return fleet.commit(args.message)
    if command == "push":
        return fleet.push(branch=args.branch, force=args.force, open_pr=args.open_pr)
    if command == "checkout":
        return fleet.checkout(args.branch, new_branch=args.new_branch)
    if command == "delete":
        return fleet.delete(args.branch)
    if command == "clone":
        return fleet.clone(url=args.url, destination=args.destination)
    if command == "workflows":
        return fleet.workflows()
    raise ValueError(f"Unknown command: {command}")


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the application."""
    parsed_args = parse_args(argv)
    setup_logging(verbose=parsed_args.verbose, debug=parsed_args.debug)

    try:
        config = Config(
            catalog_file=parsed_args.catalog,
            exclude=parsed_args.exclude,
            scope=parsed_args.scope,
            default_branch=parsed_args.default_branch,
            remote_name=parsed_args.remote,
            accept_all_host_keys=not parsed_args.verify_host_keys,
            github_token=parsed_args.github_token,
            verbose=parsed_args.verbose,
            debug=parsed_args.debug,
        )

        if parsed_args.debug:
            console.print("[yellow]Configuration:[/yellow]")
            for key, value in config.to_dict().items():
                if key == "github_token" and value:
                    value = "***"
                console.print(f"  {key}: {value}")

        fleet = Fleet(config)
        with console.status(f"Running {parsed_args.command}...", spinner="dots"):
            summary = run_command(fleet, parsed_args)

        DisplayService(verbose=parsed_args.verbose, output=console).display_summary(summary)
        return summary.exit_code
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        return 1
    except (FellError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        if parsed_args.debug:
            console.print_exception()
        return 1


if __name__ == "__main__":
    sys.exit(main())
