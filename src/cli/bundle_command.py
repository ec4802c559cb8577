"""Bundle command wiring for scenepack CLI."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Any

from core.errors import PipelineStageError, ScenepackBundleError
from pipeline.scenepack_client import ScenepackClient


def add_bundle_command(subparsers: Any, framework_help: str) -> None:
    """Register bundle subcommand."""
    parser = subparsers.add_parser(
        "bundle",
        help="Transform source and write the sandbox project locally",
    )
    parser.add_argument("--framework", required=True, help=framework_help)
    parser.add_argument("--source", required=True, help="Path to the generated source file")
    parser.add_argument("--output-dir", required=True, help="Directory to write project files")
    parser.add_argument(
        "--allow-unverified",
        action="store_true",
        help="Write the project even when brackets or tags stay unbalanced",
    )


def run_bundle_command(
    client: ScenepackClient,
    args: argparse.Namespace,
    source_text: str,
) -> int:
    """Prepare a bundle and write it below the output directory."""
    try:
        prepared, written_paths = client.write(
            source_text,
            args.framework,
            Path(args.output_dir).expanduser().resolve(),
            allow_unverified=args.allow_unverified,
        )
    except PipelineStageError as error:
        print(f"pipeline_error={error.failure_kind}: {error}")
        for diagnostic in error.diagnostics:
            print(f"diagnostic={diagnostic.render()}")
        return 1
    except ScenepackBundleError as error:
        print(f"bundle_error={error}")
        return 1
    for diagnostic in prepared.warnings:
        print(f"warning={diagnostic.render()}")
    print(f"verified={str(prepared.bundle.verified).lower()}")
    print(f"entry_path={prepared.bundle.entry_path}")
    for written_path in written_paths:
        print(f"file={written_path}")
    return 0
