"""Python SDK client for scene packaging.

This module binds one runtime configuration to the pipeline so callers can
prepare bundles locally or submit them without handling config per call.
"""

from __future__ import annotations

from pathlib import Path

from bundle.project_assembler import write_bundle
from core.catalog import load_component_catalog
from core.config import ScenepackConfig
from core.types import SUPPORTED_FRAMEWORKS, ProcessResult, SandboxSubmissionResult
from pipeline.runner import PreparedBundle, build_document, prepare_bundle, process_document
from submit.sandbox_client import SandboxClient


class ScenepackClient:
    """Primary SDK entry point for packaging generated scenes."""

    def __init__(self, config: ScenepackConfig | None = None) -> None:
        """Create SDK client.

        Args:
            config: Optional runtime configuration, read from the environment
                when omitted.
        """
        self._config = config or ScenepackConfig.from_env()

    @property
    def config(self) -> ScenepackConfig:
        return self._config

    def process(self, raw_source_text: str, target_framework: str) -> ProcessResult:
        """Transform, assemble, and submit generated source.

        Args:
            raw_source_text: Code block extracted from an assistant reply.
            target_framework: Framework tag or alias.

        Returns:
            Viewer URL and the warnings the transform stages reported.

        Raises:
            ScenepackCatalogError: If the framework is unknown.
            PipelineStageError: If no usable program remains.
            SubmissionError: If the sandbox service does not create a sandbox.
        """
        document = build_document(raw_source_text, target_framework)
        return process_document(document, self._config)

    def prepare(
        self,
        raw_source_text: str,
        target_framework: str,
        allow_unverified: bool = False,
    ) -> PreparedBundle:
        """Transform and assemble generated source without network I/O."""
        document = build_document(raw_source_text, target_framework)
        return prepare_bundle(document, allow_unverified=allow_unverified)

    def write(
        self,
        raw_source_text: str,
        target_framework: str,
        output_dir: Path,
        allow_unverified: bool = False,
    ) -> tuple[PreparedBundle, list[Path]]:
        """Prepare a bundle and write its files below a local directory.

        Args:
            raw_source_text: Code block extracted from an assistant reply.
            target_framework: Framework tag or alias.
            output_dir: Destination directory.
            allow_unverified: Write a bundle even when structure is unbalanced.

        Returns:
            Prepared bundle and the written file paths.
        """
        prepared = self.prepare(raw_source_text, target_framework, allow_unverified)
        return prepared, write_bundle(prepared.bundle, output_dir)

    def submit(self, prepared: PreparedBundle) -> SandboxSubmissionResult:
        return SandboxClient(self._config).submit(prepared.bundle)


def supported_frameworks() -> tuple[tuple[str, tuple[str, ...]], ...]:
    """Return each supported framework tag with its accepted aliases."""
    return tuple(
        (framework, load_component_catalog(framework).aliases)
        for framework in SUPPORTED_FRAMEWORKS
    )
