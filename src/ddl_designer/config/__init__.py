"""Configuration management: profiles, TOML loading, and config models.

Usage:
    >>> from ddl_designer.config import load_db_config, DatabaseProfile, DatabaseConfig
"""

from ddl_designer.config.loader import load_db_config
from ddl_designer.config.models import DatabaseConfig, DatabaseProfile, DesignerSettings

__all__ = ["load_db_config", "DatabaseConfig", "DatabaseProfile", "DesignerSettings"]
