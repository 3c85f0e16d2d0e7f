"""Database client factory.

Resolves the active profile from ``ddl-designer.toml`` and builds an
``AsyncSqlAlchemyClient`` for it.

Profile resolution order:
1. Explicit ``profile_name`` argument
2. ``{env_prefix}DB_PROFILE`` environment variable
3. Raise ``ProfileNotFoundError``
"""

import logging
import os
from pathlib import Path
from urllib.parse import quote

from ddl_designer.adapters.sqlalchemy_client import AsyncSqlAlchemyClient
from ddl_designer.config.loader import load_db_config
from ddl_designer.config.models import DatabaseConfig, DatabaseProfile
from ddl_designer.schema.dialects import Dialect

logger = logging.getLogger(__name__)


# ============================================================================
# Profile Resolution
# ============================================================================


class ProfileNotFoundError(Exception):
    """Raised when no database profile is configured."""

    pass


def get_active_profile_name(env_prefix: str = "") -> str:
    """Get active profile name from the environment.

    Args:
        env_prefix: Prefix for the env var (``APP_`` reads ``APP_DB_PROFILE``).

    Returns:
        Profile name

    Raises:
        ProfileNotFoundError: If the variable is unset or empty
    """
    env_var = f"{env_prefix}DB_PROFILE"
    env_profile = os.environ.get(env_var)
    if env_profile:
        return env_profile

    raise ProfileNotFoundError(
        "No database profile configured.\n"
        f"Set {env_var}=<name> or pass --profile <name>."
    )


def get_active_profile(
    profile_name: str | None = None,
    env_prefix: str = "",
    config: DatabaseConfig | None = None,
    config_path: Path | None = None,
) -> tuple[str, DatabaseProfile]:
    """Get active profile name and configuration.

    Returns:
        Tuple of (profile_name, DatabaseProfile)

    Raises:
        ProfileNotFoundError: If no profile is configured or the name is
            not in the config file
        FileNotFoundError: If the config file is missing
    """
    if profile_name is None:
        profile_name = get_active_profile_name(env_prefix)
    if config is None:
        config = load_db_config(config_path)

    if profile_name not in config.profiles:
        available = ", ".join(config.profiles.keys()) or "(none)"
        raise ProfileNotFoundError(
            f"Profile '{profile_name}' not found.\n"
            f"Available profiles: {available}"
        )

    return profile_name, config.profiles[profile_name]


def resolve_url(profile: DatabaseProfile) -> str:
    """Resolve profile URL with password substitution.

    Args:
        profile: Database profile from config

    Returns:
        Connection URL with password substituted

    Example:
        >>> p = DatabaseProfile(url="postgresql://u:[YOUR-PASSWORD]@h/db", db_password="p@ss")
        >>> resolve_url(p)
        'postgresql://u:p%40ss@h/db'
    """
    url = profile.url
    if profile.db_password and "[YOUR-PASSWORD]" in url:
        url = url.replace("[YOUR-PASSWORD]", quote(profile.db_password, safe=""))
    return url


# ============================================================================
# Client Factory
# ============================================================================


def get_client(
    profile_name: str | None = None,
    env_prefix: str = "",
    config_path: Path | None = None,
    **engine_kwargs,
) -> tuple[AsyncSqlAlchemyClient, Dialect]:
    """Create a database client for the active profile.

    Args:
        profile_name: Profile name from the config file. If None, reads
            ``{env_prefix}DB_PROFILE``.
        env_prefix: Prefix for environment variable lookup.
        config_path: Config file path (default: ``./ddl-designer.toml``).
        **engine_kwargs: Forwarded to ``AsyncSqlAlchemyClient``.

    Returns:
        Tuple of (client, dialect). The caller owns the client and must
        ``await client.close()``.

    Raises:
        ProfileNotFoundError: If no profile can be resolved.
        FileNotFoundError: If the config file is missing.

    Example:
        >>> client, dialect = get_client("local")
        >>> session = await DesignerSession.open_table(client, dialect, "users")
    """
    name, profile = get_active_profile(profile_name, env_prefix, config_path=config_path)
    dialect = profile.resolved_dialect
    logger.debug("Creating %s client for profile %s", dialect.value, name)
    return AsyncSqlAlchemyClient(resolve_url(profile), **engine_kwargs), dialect
