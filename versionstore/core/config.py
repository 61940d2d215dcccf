"""Library configuration with validation."""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from typing import List


class Settings(BaseSettings):
    """
    Version store settings.

    Values come from environment variables (or a local .env file) and
    fall back to the defaults below.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database Configuration
    database_url: str = Field(
        default="sqlite:///./versionstore.db",
        description="Database connection URL"
    )

    # Versioning
    # Snapshots older than this are deleted on every create (90 days by default).
    version_period: int = Field(
        default=7776000,
        description="Seconds to keep versions before the retention sweep removes them"
    )
    version_create_retries: int = Field(
        default=3,
        description="Attempts to insert a version when a concurrent writer took the number"
    )

    # File registry
    files_table: str = Field(
        default="tl_files",
        description="Table whose rows represent files on disk"
    )
    editable_files: str = Field(
        default="css,csv,html,ini,js,json,less,md,scss,svg,svgz,ts,txt,xliff,xml,yml,yaml",
        description="File extensions whose content is captured in versions (comma-separated)"
    )
    upload_root: str = Field(
        default=".",
        description="Directory that file registry paths are relative to"
    )

    # Audit listing
    user_table: str = Field(
        default="tl_user",
        description="Table holding user accounts (hidden from non-admins in the audit list)"
    )
    audit_page_size: int = Field(
        default=30,
        description="Versions per page in the audit listing"
    )

    # Audit Log Retention
    audit_retention_days: int = Field(
        default=365,
        description="Days to keep audit log entries (0 = keep forever)"
    )

    # Display formats (strftime)
    date_format: str = Field(default="%Y-%m-%d")
    time_format: str = Field(default="%H:%M")
    datim_format: str = Field(default="%Y-%m-%d %H:%M")

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    log_format: str = Field(
        default="json",
        description="Log output format: 'json' for structured, 'text' for human-readable"
    )

    def get_editable_extensions(self) -> List[str]:
        """Get editable file extensions as a lowercase list."""
        return [ext.strip().lower() for ext in self.editable_files.split(',') if ext.strip()]

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the standard Python logging levels."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level. Must be one of: {valid_levels}")
        return v_upper

    @field_validator('audit_page_size', 'version_create_retries')
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Must be a positive integer")
        return v


# Global settings instance
settings = Settings()
