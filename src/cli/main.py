"""scenepack CLI entry points.
This module exposes commands that package generated scenes into sandboxes.
It maps argparse commands onto SDK calls.
"""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Any, Sequence

from cli.bundle_command import add_bundle_command, run_bundle_command
from core.errors import (
    PipelineStageError,
    ScenepackBundleError,
    ScenepackCatalogError,
    ScenepackConfigError,
    SubmissionError,
    SubmissionRejectedError,
)
from core.types import SUPPORTED_FRAMEWORKS
from pipeline.scenepack_client import ScenepackClient, supported_frameworks

_FRAMEWORK_HELP = f"Target framework: one of {', '.join(SUPPORTED_FRAMEWORKS)} or an alias"


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(
        prog="scenepack",
        description="Package generated 3D scene code into runnable sandboxes",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_process_command(subparsers)
    add_bundle_command(subparsers, _FRAMEWORK_HELP)
    subparsers.add_parser("frameworks", help="List supported frameworks and aliases")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the scenepack CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command == "frameworks":
        return _run_frameworks_command()
    try:
        client = ScenepackClient()
    except ScenepackConfigError as error:
        print(f"config_error={error}")
        return 1
    source_text = _read_source(args.source)
    if source_text is None:
        return 1
    try:
        if args.command == "process":
            return _run_process_command(client, args, source_text)
        if args.command == "bundle":
            return run_bundle_command(client, args, source_text)
    except ScenepackCatalogError as error:
        print(f"framework_error={error}")
        return 1
    parser.error(f"Unsupported command: {args.command}")
    return 2


def _add_process_command(subparsers: Any) -> None:
    parser = subparsers.add_parser(
        "process",
        help="Transform source, submit it, and print the sandbox viewer URL",
    )
    parser.add_argument("--framework", required=True, help=_FRAMEWORK_HELP)
    parser.add_argument("--source", required=True, help="Path to the generated source file")


def _read_source(source: str) -> str | None:
    """Read the source file named on the command line.

    Args:
        source: Path argument.

    Returns:
        File content, or None after printing an error line.
    """
    source_path = Path(source).expanduser()
    try:
        return source_path.read_text(encoding="utf-8")
    except OSError as error:
        print(f"source_error=Failed to read source file {source_path}: {error}.")
        return None


def _run_process_command(
    client: ScenepackClient,
    args: argparse.Namespace,
    source_text: str,
) -> int:
    """Handle process command.

    Args:
        client: SDK client.
        args: Parsed CLI args.
        source_text: Generated source to package.

    Returns:
        Exit code.
    """
    try:
        result = client.process(source_text, args.framework)
    except PipelineStageError as error:
        print(f"pipeline_error={error.failure_kind}: {error}")
        for diagnostic in error.diagnostics:
            print(f"diagnostic={diagnostic.render()}")
        return 1
    except ScenepackBundleError as error:
        print(f"bundle_error={error}")
        return 1
    except SubmissionError as error:
        print(f"submission_error={error.failure_kind}: {error}")
        if isinstance(error, SubmissionRejectedError):
            print(f"http_status={error.status}")
        return 1
    print(f"viewer_url={result.viewer_url}")
    print(f"embed_url={result.submission.embed_url}")
    for diagnostic in result.warnings:
        print(f"warning={diagnostic.render()}")
    return 0


def _run_frameworks_command() -> int:
    for framework, aliases in supported_frameworks():
        print(f"{framework}\t{', '.join(aliases) or '-'}")
    return 0
