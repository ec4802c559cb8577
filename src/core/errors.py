"""scenepack exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Each subsystem raises a specific error type for debuggability.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from core.types import Diagnostic


class ScenepackError(Exception):
    """Base exception for all scenepack failures."""

    failure_kind = "ScenepackError"


class ScenepackConfigError(ScenepackError):
    """Raised for invalid runtime configuration."""


class ScenepackDependencyError(ScenepackError):
    """Raised when an optional runtime dependency is missing."""


class ScenepackCatalogError(ScenepackError):
    """Raised for unknown frameworks and invalid component catalogs."""


class ScenepackBundleError(ScenepackError):
    """Raised when a project bundle cannot be assembled or written."""


class PipelineStageError(ScenepackError):
    """Raised when a transform stage leaves no usable program.

    Attributes:
        stage: Name of the stage that produced the blocking diagnostic.
        diagnostics: Every diagnostic collected up to the failure.
    """

    def __init__(
        self,
        message: str,
        stage: str,
        diagnostics: tuple["Diagnostic", ...] = (),
    ) -> None:
        super().__init__(message)
        self.stage = stage
        self.diagnostics = diagnostics


class StructuralImbalanceError(PipelineStageError):
    """Raised when brackets or tags stay unbalanced after repair."""

    failure_kind = "StructuralImbalance"


class EmptyComponentManifestError(PipelineStageError):
    """Raised when no catalog component is used by the source."""

    failure_kind = "EmptyComponentManifest"


class NoEntryPointCandidateError(PipelineStageError):
    """Raised when no function renders the framework root container."""

    failure_kind = "NoEntryPointCandidate"


class SubmissionError(ScenepackError):
    """Base error for sandbox submission failures."""

    failure_kind = "SubmissionFailed"


class SubmissionRejectedError(SubmissionError):
    """Raised when the sandbox service does not return a usable sandbox.

    Attributes:
        status: HTTP status code returned by the service.
        excerpt: Truncated response body for quota/rejection triage.
    """

    failure_kind = "SubmissionRejected"

    def __init__(self, message: str, status: int, excerpt: str) -> None:
        super().__init__(message)
        self.status = status
        self.excerpt = excerpt


class MalformedResponseError(SubmissionRejectedError):
    """Raised when a success response carries no sandbox identifier."""

    failure_kind = "MalformedResponse"


class SubmissionTimeoutError(SubmissionError):
    """Raised when the sandbox service does not answer in time."""

    failure_kind = "SubmissionTimeout"


class TransportError(SubmissionError):
    """Raised for connection-level failures before any response."""

    failure_kind = "TransportError"
