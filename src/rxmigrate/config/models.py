"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (RXMIGRATE__KEY or RXMIGRATE__SECTION__KEY)
3. Project YAML (.rxmigrate.yaml in the project root)
4. Built-in defaults (this file)

Examples:
    RXMIGRATE__PREVIEW_ONLY=true
    RXMIGRATE__MAX_PARALLEL_FILES=10
    RXMIGRATE__LOGGING__LEVEL=DEBUG
    RXMIGRATE__VALIDATION__CHECK_PROGRAM=true
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from rxmigrate.config import constants
from rxmigrate.core.excludes import DEFAULT_EXCLUDE_PATTERNS

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
ReportFormat = Literal["text", "json", "markdown"]


class LogOutputConfig(BaseModel):
    """Single logging output configuration."""

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        RXMIGRATE__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="INFO",
        description="Root log level. verbose_logging forces DEBUG.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class GenerationConfig(BaseModel):
    """Code generation options.

    Env vars:
        RXMIGRATE__GENERATION__HELPERS_MODULE: Import path of the shared rxMethod helpers
        RXMIGRATE__GENERATION__ADD_PROVENANCE_COMMENTS: Prefix converted methods with a comment
    """

    add_provenance_comments: bool = Field(
        default=True,
        description="Prefix each converted method with its pattern and confidence.",
    )
    helpers_module: str = Field(
        default=constants.DEFAULT_HELPERS_MODULE,
        description="Module exporting createOptimisticUpdatePattern and createBulkOperationPattern.",
    )
    store_identifier: str = Field(
        default="store",
        description="Name of the state container passed to patchState and the helpers.",
    )
    loading_field: str = Field(
        default="isLoading",
        description="Loading flag used when the store declares none.",
    )
    error_field: str = Field(default="error")
    group_imports: bool = True
    sort_imports: bool = True


class ValidationConfig(BaseModel):
    """Validation options.

    Env vars:
        RXMIGRATE__VALIDATION__CHECK_PROGRAM: Run tsc over the project after conversion
        RXMIGRATE__VALIDATION__TIMEOUT_SEC: Budget for the tsc run
    """

    check_syntax: bool = True
    check_dependencies: bool = True
    check_program: bool = Field(
        default=False,
        description="Run the TypeScript compiler over the project after conversion.",
    )
    tsc_executable: str = "tsc"
    tsc_args: list[str] = Field(default_factory=lambda: ["--noEmit", "--pretty", "false"])
    timeout_sec: float = Field(
        default=30.0,
        description="The compiler run is abandoned and flagged after this many seconds.",
    )
    max_errors: int = Field(default=50, description="Cap on compiler diagnostics kept.")
    manifest_name: str = "package.json"
    required_dependencies: list[str] = Field(
        default_factory=lambda: list(constants.REQUIRED_DEPENDENCIES)
    )
    max_file_bytes: int = constants.OVERSIZED_FILE_BYTES

    @field_validator("timeout_sec")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"timeout_sec must be positive, got {v}")
        return v


class ClassifierThresholds(BaseModel):
    """Confidence thresholds for the pattern classifier."""

    manual_review_confidence: int = constants.MANUAL_REVIEW_CONFIDENCE
    simple_load_review: int = constants.SIMPLE_LOAD_REVIEW_THRESHOLD
    optimistic_review: int = constants.OPTIMISTIC_REVIEW_THRESHOLD
    bulk_review: int = constants.BULK_REVIEW_THRESHOLD
    alternative_min_confidence: int = constants.ALTERNATIVE_MIN_CONFIDENCE


class MigrationConfig(BaseModel):
    """Root migration configuration."""

    root_directory: Path = Field(default_factory=Path.cwd)
    target_files: list[Path] | None = Field(
        default=None,
        description="Explicit files to migrate. Discovery is used when unset.",
    )
    file_pattern: str = constants.STORE_FILE_GLOB
    exclude_patterns: list[str] = Field(default_factory=lambda: list(DEFAULT_EXCLUDE_PATTERNS))

    preview_only: bool = Field(
        default=False,
        description="Convert and report without writing files or backups.",
    )
    verbose_logging: bool = False
    create_backups: bool = True
    preserve_caller_compatibility: bool = Field(
        default=True,
        description="Emit <name>Async wrappers so existing callers keep compiling.",
    )
    max_parallel_files: int = Field(default=5, description="Files converted per batch.")
    stop_on_first_error: bool = False
    report_format: ReportFormat = "text"
    report_output_path: Path | None = None

    logging: LoggingConfig = LoggingConfig()
    generation: GenerationConfig = GenerationConfig()
    validation: ValidationConfig = ValidationConfig()
    classifier: ClassifierThresholds = ClassifierThresholds()

    @field_validator("max_parallel_files")
    @classmethod
    def validate_parallelism(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"max_parallel_files must be at least 1, got {v}")
        return v
