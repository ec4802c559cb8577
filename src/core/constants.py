"""Core constants used across scenepack modules.

This module centralizes non-domain-specific constants.
Keeping values here avoids magic literals in business logic.
"""

from __future__ import annotations

DEFAULT_SANDBOX_ORIGIN = "https://codesandbox.io"
DEFINE_API_PATH = "/api/v1/sandboxes/define"
VIEWER_PATH_PREFIX = "/s/"
EMBED_PATH_PREFIX = "/embed/"
DEFAULT_REQUEST_TIMEOUT_SECONDS = 120.0
DEFAULT_EXCERPT_LENGTH = 500
RESPONSE_SCAN_LIMIT_BYTES = 256 * 1024
CATALOG_SCHEMA_VERSION = 1
CATALOG_DIR_NAME = "catalogs"
CATALOG_FILE_SUFFIX = ".yaml"
STATEMENT_TERMINATOR = ";"
SEVERITY_WARNING = "warning"
SEVERITY_ERROR = "error"
STAGE_NORMALIZE = "dialect_normalizer"
STAGE_REPAIR = "structural_repair"
STAGE_RESOLVE = "usage_resolver"
STAGE_ENTRY = "entry_point"
STAGE_ASSEMBLE = "project_assembler"
STAGE_SUBMIT = "sandbox_submission"
PIPELINE_STAGES = (STAGE_NORMALIZE, STAGE_REPAIR, STAGE_RESOLVE, STAGE_ENTRY)
