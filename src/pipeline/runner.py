"""Pipeline orchestration.

The four transform stages always run in the same order, each one a pure
``StageOutcome -> StageOutcome`` function. Blocking diagnostics are turned
into typed errors only after the last stage, so a caller always sees every
diagnostic the run produced.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import partial
from typing import Callable

from bundle.project_assembler import assemble_bundle
from core.catalog import load_component_catalog, resolve_framework
from core.config import ScenepackConfig
from core.constants import (
    STAGE_ENTRY,
    STAGE_NORMALIZE,
    STAGE_REPAIR,
    STAGE_RESOLVE,
)
from core.errors import (
    EmptyComponentManifestError,
    NoEntryPointCandidateError,
    PipelineStageError,
    StructuralImbalanceError,
)
from core.logging_config import get_logger
from core.types import (
    Diagnostic,
    ProcessResult,
    ProjectBundle,
    SourceDocument,
    StageOutcome,
)
from submit.sandbox_client import SandboxClient
from transforms.dialect_normalizer import normalize_dialect
from transforms.entry_point import synthesize_entry_point
from transforms.structural_repair import repair_structure
from transforms.usage_resolver import resolve_usage

_LOGGER = get_logger(__name__)

Stage = Callable[[StageOutcome], StageOutcome]

# Checked in stage order; the first match is raised.
_HARD_FAILURES: tuple[tuple[str, type[PipelineStageError]], ...] = (
    ("structural_imbalance", StructuralImbalanceError),
    ("empty_component_manifest", EmptyComponentManifestError),
    ("no_entry_point_candidate", NoEntryPointCandidateError),
)


@dataclass(frozen=True)
class PreparedBundle:
    """Bundle and the transform outcome it was assembled from.

    Attributes:
        bundle: Assembled project bundle.
        outcome: Final transform outcome with every diagnostic.
    """

    bundle: ProjectBundle
    outcome: StageOutcome

    @property
    def warnings(self) -> tuple[Diagnostic, ...]:
        return self.outcome.warnings()


def build_document(raw_source_text: str, target_framework: str) -> SourceDocument:
    """Pair source text with its canonical framework tag.

    Raises:
        ScenepackCatalogError: If the framework tag or alias is unknown.
    """
    return SourceDocument(text=raw_source_text, framework=resolve_framework(target_framework))


def run_transform_stages(document: SourceDocument) -> StageOutcome:
    """Run every transform stage over a source document.

    Args:
        document: Source text and declared framework.

    Returns:
        Final outcome. Blocking problems are reported as error diagnostics,
        never raised.
    """
    catalog = load_component_catalog(document.framework)
    stages: tuple[tuple[str, Stage], ...] = (
        (STAGE_NORMALIZE, normalize_dialect),
        (STAGE_REPAIR, repair_structure),
        (STAGE_RESOLVE, partial(resolve_usage, catalog=catalog)),
        (STAGE_ENTRY, partial(synthesize_entry_point, catalog=catalog)),
    )
    outcome = StageOutcome.initial(document.text)
    for stage_name, stage in stages:
        diagnostic_count = len(outcome.diagnostics)
        outcome = stage(outcome)
        emitted = outcome.diagnostics[diagnostic_count:]
        _LOGGER.info(
            "pipeline_stage_completed",
            stage=stage_name,
            framework=document.framework,
            changed=outcome.changed,
            warning_count=sum(1 for diagnostic in emitted if not diagnostic.is_error),
            error_count=sum(1 for diagnostic in emitted if diagnostic.is_error),
        )
    return outcome


def raise_for_hard_failures(outcome: StageOutcome, allow_unverified: bool = False) -> None:
    """Raise the first blocking diagnostic of a finished run.

    Args:
        outcome: Final transform outcome.
        allow_unverified: Tolerate a structural imbalance.

    Raises:
        PipelineStageError: Subclass matching the first blocking diagnostic.
    """
    errors = outcome.errors()
    for code, error_type in _HARD_FAILURES:
        if allow_unverified and error_type is StructuralImbalanceError:
            continue
        diagnostic = next((item for item in errors if item.code == code), None)
        if diagnostic is not None:
            _LOGGER.error(
                "pipeline_failed",
                failure_kind=error_type.failure_kind,
                stage=diagnostic.stage,
                error_count=len(errors),
            )
            raise error_type(diagnostic.message, diagnostic.stage, outcome.diagnostics)


def prepare_bundle(document: SourceDocument, allow_unverified: bool = False) -> PreparedBundle:
    """Transform and assemble a document without any network I/O.

    Args:
        document: Source text and declared framework.
        allow_unverified: Return an unverified bundle instead of raising
            when structural repair leaves an imbalance.

    Returns:
        Assembled bundle and the outcome it came from.

    Raises:
        PipelineStageError: If a stage left no usable program.
        ScenepackBundleError: If the bundle cannot be assembled.
    """
    outcome = run_transform_stages(document)
    raise_for_hard_failures(outcome, allow_unverified=allow_unverified)
    verified = not any(
        diagnostic.code == "structural_imbalance" for diagnostic in outcome.errors()
    )
    bundle = assemble_bundle(
        outcome.text,
        document.framework,
        manifest=outcome.manifest,
        verified=verified,
    )
    return PreparedBundle(bundle=bundle, outcome=outcome)


def process_document(document: SourceDocument, config: ScenepackConfig) -> ProcessResult:
    """Transform, assemble, and submit one document.

    Args:
        document: Source text and declared framework.
        config: Runtime configuration for the sandbox client.

    Returns:
        Viewer URL, warnings, and the full submission result.

    Raises:
        PipelineStageError: If a stage left no usable program.
        SubmissionError: If the sandbox service does not create a sandbox.
    """
    prepared = prepare_bundle(document)
    submission = SandboxClient(config).submit(prepared.bundle)
    warnings = prepared.outcome.warnings()
    _LOGGER.info(
        "pipeline_completed",
        framework=document.framework,
        warning_count=len(warnings),
        viewer_url=submission.viewer_url,
    )
    return ProcessResult(
        viewer_url=submission.viewer_url,
        warnings=warnings,
        submission=submission,
    )


def process(raw_source_text: str, target_framework: str) -> ProcessResult:
    """Run the full pipeline with configuration from the environment."""
    document = build_document(raw_source_text, target_framework)
    return process_document(document, ScenepackConfig.from_env())
