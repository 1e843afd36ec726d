"""Command-line interface for manual documentation runs."""

import argparse
import json
import logging
import os
import sys
from typing import List, Optional, Tuple

from dotenv import load_dotenv

from autodoc.core.config import Settings
from autodoc.core.logging_config import setup_logging
from autodoc.exceptions import AutodocError
from autodoc.schemas import Outcome
from autodoc.services import DocumentationService

logger = logging.getLogger("autodoc.cli")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="autodoc",
        description="Generate or update Confluence documentation for a git repository",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s file src/services/orders.py
  %(prog)s path src/services
  %(prog)s commit 3f2a9c1
  %(prog)s recent --count 3
  %(prog)s page 983041 --commit 3f2a9c1
        """,
    )
    parser.add_argument("--repo", default=None, help="Override GIT_REPO_PATH")
    parser.add_argument("--space", default=None, help="Override CONFLUENCE_SPACE_ID")
    parser.add_argument("--model", default=None, help="Override LLM_MODEL")
    parser.add_argument("--max-steps", type=int, default=None, help="Override MAX_STEPS")

    commands = parser.add_subparsers(dest="command", required=True)

    file_cmd = commands.add_parser("file", help="Generate documentation for one file")
    file_cmd.add_argument("path")

    path_cmd = commands.add_parser("path", help="Generate documentation for every documentable file under a directory")
    path_cmd.add_argument("directory")

    commit_cmd = commands.add_parser("commit", help="Update documentation affected by a commit")
    commit_cmd.add_argument("commit_id")

    recent_cmd = commands.add_parser("recent", help="Update documentation for the most recent commits")
    recent_cmd.add_argument("--count", type=int, default=5)

    page_cmd = commands.add_parser("page", help="Update one documentation page (defaults to HEAD)")
    page_cmd.add_argument("page_id")
    page_cmd.add_argument("--commit", default=None, help="Commit to document (default: HEAD)")

    return parser


def _apply_overrides(args: argparse.Namespace) -> None:
    if args.repo:
        os.environ["GIT_REPO_PATH"] = args.repo
    if args.space:
        os.environ["CONFLUENCE_SPACE_ID"] = args.space
    if args.model:
        os.environ["LLM_MODEL"] = args.model
    if args.max_steps is not None:
        os.environ["MAX_STEPS"] = str(args.max_steps)


def _run(service: DocumentationService, args: argparse.Namespace) -> List[Tuple[str, Outcome]]:
    if args.command == "file":
        return [(args.path, service.document_file(args.path))]
    if args.command == "path":
        return service.document_directory(args.directory)
    if args.command == "commit":
        return [(args.commit_id, service.update_for_commit(args.commit_id))]
    if args.command == "recent":
        return [(cid, service.update_for_commit(cid)) for cid in service.recent_commit_ids(args.count)]
    return [(args.page_id, service.update_page(args.page_id, args.commit))]


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point. Returns the process exit code."""
    load_dotenv()
    args = _build_parser().parse_args(argv)
    _apply_overrides(args)

    try:
        settings = Settings()
    except ValueError as e:
        print(f"[Config] {e}", file=sys.stderr)
        return 2
    setup_logging(log_level=settings.log_level, log_format=settings.log_format)

    try:
        service = DocumentationService.from_settings(settings)
        results = _run(service, args)
    except AutodocError as e:
        print(json.dumps(e.to_dict(), indent=2))
        return 1

    failed = False
    for target, outcome in results:
        print(json.dumps({"target": target, **outcome.model_dump(mode="json")}, indent=2))
        failed = failed or not outcome.success

    if not results:
        logger.warning("Nothing to document")
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
