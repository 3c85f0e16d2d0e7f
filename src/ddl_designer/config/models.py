"""Pydantic models for designer configuration."""

from pydantic import BaseModel, Field

from ddl_designer.schema.dialects import Dialect, dialect_from_url
from ddl_designer.schema.models import TableOptions


# ============================================================================
# Configuration Models
# ============================================================================


class DatabaseProfile(BaseModel):
    """Database connection profile from ddl-designer.toml."""

    url: str
    description: str = ""
    db_password: str | None = None  # For [YOUR-PASSWORD] placeholder substitution
    dialect: Dialect | None = None  # Inferred from the URL scheme when unset

    @property
    def resolved_dialect(self) -> Dialect:
        """Configured dialect, or the one named by the URL scheme.

        Raises:
            ValueError: If neither names a supported dialect.
        """
        if self.dialect is not None:
            return self.dialect
        return dialect_from_url(self.url)


class DesignerSettings(BaseModel):
    """Defaults applied to new designer sessions."""

    default_table_name: str = "new_table"
    mysql_options: TableOptions = Field(default_factory=TableOptions)


class DatabaseConfig(BaseModel):
    """Complete configuration from ddl-designer.toml."""

    profiles: dict[str, DatabaseProfile]
    designer: DesignerSettings = Field(default_factory=DesignerSettings)
