"""TOML configuration loader for ddl-designer."""

import tomllib
from pathlib import Path

from ddl_designer.config.models import DatabaseConfig, DatabaseProfile, DesignerSettings

DEFAULT_CONFIG_NAME = "ddl-designer.toml"


def load_db_config(config_path: Path | None = None) -> DatabaseConfig:
    """Load database profiles and designer defaults from a TOML file.

    Args:
        config_path: Path to the config file (default: ``ddl-designer.toml``
            in the current working directory).

    Returns:
        DatabaseConfig with all profiles.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        pydantic.ValidationError: If a profile or the designer section is
            malformed.
    """
    if config_path is None:
        config_path = Path.cwd() / DEFAULT_CONFIG_NAME

    if not config_path.exists():
        raise FileNotFoundError(
            f"Database config not found: {config_path}\n"
            f"Create {DEFAULT_CONFIG_NAME} with at least one [profiles.<name>] section."
        )

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    # Parse profiles
    profiles = {}
    for name, profile_data in data.get("profiles", {}).items():
        profiles[name] = DatabaseProfile(**profile_data)

    # Parse designer settings
    designer = DesignerSettings(**data.get("designer", {}))

    return DatabaseConfig(profiles=profiles, designer=designer)
