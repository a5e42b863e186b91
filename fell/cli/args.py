"""Command-line argument parsing for fell."""

import argparse
from typing import List, Optional

from fell.__version__ import __version__


def _add_filters(parser: argparse.ArgumentParser, scopeable: bool = True) -> None:
    parser.add_argument(
        "-x",
        "--exclude",
        action="append",
        default=[],
        metavar="NAME",
        help="Repository name to leave out (repeatable)",
    )
    if scopeable:
        parser.add_argument(
            "-s",
            "--scope",
            default=None,
            help="Only repositories whose path or name starts with this prefix",
        )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with one sub-command per verb."""
    parser = argparse.ArgumentParser(
        prog="fell",
        description="Run git commands across a fleet of repositories",
        epilog="Repositories are read from $FELL_CATALOG or ~/.config/fell/repos "
        "(one '<path> [<clone-url>]' per line).",
    )
    parser.add_argument("--version", action="version", version=f"fell {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show verbose output")
    parser.add_argument(
        "--debug", action="store_true", help="Show debug information for troubleshooting"
    )
    parser.add_argument("--catalog", metavar="FILE", help="Catalog file listing the repositories")
    parser.add_argument(
        "--default-branch", default="master", help="Default branch name (default: master)"
    )
    parser.add_argument("--remote", default="origin", help="Remote name (default: origin)")
    parser.add_argument(
        "--verify-host-keys",
        action="store_true",
        help="Validate SSH host keys and TLS certificates for remote operations",
    )
    parser.add_argument("--github-token", help="GitHub token (default: $GITHUB_TOKEN)")

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    branch = subparsers.add_parser(
        "branch", aliases=["br"], help="Report the current <HEAD> branch for all repos"
    )
    _add_filters(branch, scopeable=False)

    status = subparsers.add_parser("status", help="Report clean and dirty repos")
    _add_filters(status)

    sync = subparsers.add_parser(
        "sync", help="Fetch and fast-forward every clean repo to its upstream default branch"
    )
    _add_filters(sync)

    commit = subparsers.add_parser("commit", help="Commit all changes in every dirty repo")
    _add_filters(commit)
    commit.add_argument("-m", "--message", required=True, help="Commit message")

    push = subparsers.add_parser("push", help="Push a branch in every repo that is ahead")
    _add_filters(push)
    push.add_argument(
        "-b", "--branch", default=None, help="Branch to push (default: each repo's current branch)"
    )
    push.add_argument("-f", "--force", action="store_true", help="Force the remote update")
    push.add_argument(
        "--pr", action="store_true", dest="open_pr", help="Open a GitHub pull request after pushing"
    )

    checkout = subparsers.add_parser("checkout", aliases=["co"], help="Switch every repo to a branch")
    _add_filters(checkout)
    checkout.add_argument("branch", help="Branch name")
    checkout.add_argument(
        "-b", "--new", action="store_true", dest="new_branch", help="Create the branch at HEAD first"
    )

    delete = subparsers.add_parser("delete", help="Delete a local branch from every repo that has it")
    _add_filters(delete)
    delete.add_argument("branch", help="Branch name")

    clone = subparsers.add_parser(
        "clone", help="Clone missing catalog repos, or a single URL"
    )
    _add_filters(clone)
    clone.add_argument("url", nargs="?", default=None, help="URL of a single repository to clone")
    clone.add_argument(
        "destination",
        nargs="?",
        default=None,
        help="Destination path; may contain {name} (default: ./{name})",
    )

    workflows = subparsers.add_parser(
        "workflows", help="Report the latest GitHub Actions run for each repo"
    )
    _add_filters(workflows)

    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    args = build_parser().parse_args(argv)
    aliases = {"br": "branch", "co": "checkout"}
    args.command = aliases.get(args.command, args.command)
    if not hasattr(args, "scope"):
        args.scope = None
    return args
