"""Shared typed models.

This module defines immutable data models threaded between the transform
stages, the project assembler, and the sandbox client.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Iterator, Literal, Mapping

from core.constants import SEVERITY_ERROR, SEVERITY_WARNING

TargetFramework = Literal["react-three-fiber", "reactylon", "threejs", "babylonjs"]
SUPPORTED_FRAMEWORKS: tuple[TargetFramework, ...] = (
    "react-three-fiber",
    "reactylon",
    "threejs",
    "babylonjs",
)
Severity = Literal["warning", "error"]


@dataclass(frozen=True)
class SourceDocument:
    """Untrusted source text with its declared target framework.

    Attributes:
        text: Code block extracted from an assistant reply.
        framework: Declared framework tag.
    """

    text: str
    framework: TargetFramework


@dataclass(frozen=True)
class Diagnostic:
    """One finding reported by a pipeline stage.

    Attributes:
        stage: Stage name that produced the finding.
        code: Stable machine-readable finding code.
        severity: "warning" for recovered issues, "error" for blocking ones.
        message: Human-readable description.
        line: 1-based line in the stage input, when known.
    """

    stage: str
    code: str
    severity: Severity
    message: str
    line: int | None = None

    @property
    def is_error(self) -> bool:
        return self.severity == SEVERITY_ERROR

    def render(self) -> str:
        """Render as a single display line."""
        location = f":{self.line}" if self.line is not None else ""
        return f"[{self.stage}{location}] {self.code}: {self.message}"


def warning_diagnostic(stage: str, code: str, message: str, line: int | None = None) -> Diagnostic:
    return Diagnostic(stage=stage, code=code, severity=SEVERITY_WARNING, message=message, line=line)


def error_diagnostic(stage: str, code: str, message: str, line: int | None = None) -> Diagnostic:
    return Diagnostic(stage=stage, code=code, severity=SEVERITY_ERROR, message=message, line=line)


@dataclass(frozen=True)
class ImportManifest:
    """Consolidated imports keyed by module name.

    Attributes:
        modules: Module name to deduplicated imported identifiers.
    """

    modules: Mapping[str, frozenset[str]] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Iterable[str]]) -> "ImportManifest":
        """Freeze a module -> identifiers mapping, dropping empty modules."""
        frozen = {
            module: frozenset(identifiers)
            for module, identifiers in sorted(mapping.items())
            if identifiers
        }
        return cls(modules=frozen)

    def module_names(self) -> tuple[str, ...]:
        return tuple(sorted(self.modules))

    def identifiers(self) -> tuple[str, ...]:
        """Return every imported identifier in lexicographic order."""
        collected: set[str] = set()
        for identifiers in self.modules.values():
            collected.update(identifiers)
        return tuple(sorted(collected))

    def is_empty(self) -> bool:
        return not self.modules


@dataclass(frozen=True)
class StageOutcome:
    """Value threaded between pipeline stages.

    Attributes:
        text: Source text after the stage ran.
        diagnostics: Diagnostics from this and every earlier stage.
        changed: Whether the most recent stage altered the text.
        manifest: Import manifest, set once the usage resolver has run.
    """

    text: str
    diagnostics: tuple[Diagnostic, ...] = ()
    changed: bool = False
    manifest: ImportManifest | None = None

    @classmethod
    def initial(cls, text: str) -> "StageOutcome":
        return cls(text=text)

    def advance(
        self,
        text: str,
        diagnostics: Iterable[Diagnostic] = (),
        manifest: ImportManifest | None = None,
    ) -> "StageOutcome":
        """Build the outcome of the next stage from this one.

        Args:
            text: Text produced by the next stage.
            diagnostics: Diagnostics the next stage emitted.
            manifest: Replacement manifest, or None to carry the current one.

        Returns:
            New outcome with accumulated diagnostics.
        """
        return StageOutcome(
            text=text,
            diagnostics=self.diagnostics + tuple(diagnostics),
            changed=text != self.text,
            manifest=manifest if manifest is not None else self.manifest,
        )

    def errors(self) -> tuple[Diagnostic, ...]:
        return tuple(diagnostic for diagnostic in self.diagnostics if diagnostic.is_error)

    def warnings(self) -> tuple[Diagnostic, ...]:
        return tuple(diagnostic for diagnostic in self.diagnostics if not diagnostic.is_error)


@dataclass(frozen=True)
class ProjectFile:
    """One file of a sandbox project.

    Attributes:
        path: Project-relative POSIX path.
        content: File content.
        is_binary: Whether content is a binary payload reference.
    """

    path: str
    content: str
    is_binary: bool = False


@dataclass(frozen=True)
class ProjectBundle:
    """Ordered file set submitted to the sandbox service.

    Attributes:
        framework: Framework the bundle targets.
        files: Files in template order.
        entry_path: Path of the single designated entry file.
        verified: False when structural repair left an imbalance.
    """

    framework: TargetFramework
    files: tuple[ProjectFile, ...]
    entry_path: str
    verified: bool = True

    def __iter__(self) -> Iterator[ProjectFile]:
        return iter(self.files)

    def __len__(self) -> int:
        return len(self.files)

    def paths(self) -> tuple[str, ...]:
        return tuple(project_file.path for project_file in self.files)

    def get(self, path: str) -> ProjectFile | None:
        for project_file in self.files:
            if project_file.path == path:
                return project_file
        return None


@dataclass(frozen=True)
class SandboxSubmissionResult:
    """Terminal result of a successful sandbox submission.

    Attributes:
        viewer_url: Shareable sandbox address.
        raw_identifier: Sandbox identifier recovered from the response.
        http_status: Status code of the response that carried it.
        embed_url: Embeddable iframe address for the same sandbox.
    """

    viewer_url: str
    raw_identifier: str
    http_status: int
    embed_url: str


@dataclass(frozen=True)
class ProcessResult:
    """Successful outcome of the full pipeline.

    Attributes:
        viewer_url: Shareable sandbox address.
        warnings: Recovered issues reported by the transform stages.
        submission: Full submission result.
    """

    viewer_url: str
    warnings: tuple[Diagnostic, ...]
    submission: SandboxSubmissionResult

    @property
    def warnings_only(self) -> bool:
        """True for the non-fatal NormalizationWarningOnly outcome."""
        return bool(self.warnings)
