"""Public SDK surface for scenepack.

This module provides a stable import path for SDK users.
It re-exports the primary client, the pipeline entry points, and typed models.
"""

from __future__ import annotations

from core.config import ScenepackConfig
from core.types import (
    Diagnostic,
    ProcessResult,
    ProjectBundle,
    ProjectFile,
    SandboxSubmissionResult,
    SourceDocument,
)
from pipeline.runner import PreparedBundle, prepare_bundle, process, run_transform_stages
from pipeline.scenepack_client import ScenepackClient, supported_frameworks

__all__ = [
    "Diagnostic",
    "PreparedBundle",
    "ProcessResult",
    "ProjectBundle",
    "ProjectFile",
    "SandboxSubmissionResult",
    "ScenepackClient",
    "ScenepackConfig",
    "SourceDocument",
    "prepare_bundle",
    "process",
    "run_transform_stages",
    "supported_frameworks",
]
