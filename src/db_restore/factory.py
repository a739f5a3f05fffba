"""Restore store factory.

Resolves a target store from, in priority order:
1. An explicit profile name, or ``DB_PROFILE``, looked up in db.toml.
2. The ``default_profile`` of db.toml.
3. Supabase credentials in the environment (``SUPABASE_URL`` +
   ``SUPABASE_SERVICE_ROLE_KEY``).

Usage:
    from db_restore.factory import get_adapter

    store, target = get_adapter(profile_name="staging")
"""

import logging
from urllib.parse import quote

from db_restore.adapters.base import RestoreStore
from db_restore.adapters.postgres import AsyncPostgresAdapter
from db_restore.config.loader import get_settings, load_db_config
from db_restore.config.models import DatabaseProfile, RestoreSettings
from db_restore.exceptions import ProfileNotFoundError

logger = logging.getLogger(__name__)


def resolve_url(profile: DatabaseProfile) -> str:
    """Resolve profile URL with password substitution.

    Args:
        profile: Database profile from config.

    Returns:
        Connection URL with ``[YOUR-PASSWORD]`` replaced by the URL-quoted
        ``db_password``.
    """
    url = profile.url
    if profile.db_password and "[YOUR-PASSWORD]" in url:
        url = url.replace("[YOUR-PASSWORD]", quote(profile.db_password, safe=""))
    return url


def create_adapter(profile: DatabaseProfile, settings: RestoreSettings) -> RestoreStore:
    """Build the adapter for a profile's provider.

    Raises:
        ProfileNotFoundError: If a Supabase profile has no key.
        ImportError: If the ``supabase`` extra is not installed.
    """
    if profile.provider == "supabase":
        from db_restore.adapters.supabase import AsyncSupabaseAdapter

        key = profile.key or settings.supabase_service_role_key
        if not key:
            raise ProfileNotFoundError(
                "Supabase profile needs a service role key "
                "(profile 'key' or SUPABASE_SERVICE_ROLE_KEY)"
            )
        return AsyncSupabaseAdapter(url=profile.url, key=key)

    return AsyncPostgresAdapter(
        resolve_url(profile), jsonb_columns=profile.jsonb_columns
    )


def resolve_profile(
    profile_name: str | None = None,
    settings: RestoreSettings | None = None,
) -> tuple[DatabaseProfile, str]:
    """Resolve the active target profile without creating an adapter.

    Args:
        profile_name: Profile from db.toml.  ``None`` falls back to
            ``DB_PROFILE``, then the config's default, then environment
            Supabase credentials.
        settings: Settings override (default: cached ``get_settings()``).

    Returns:
        Tuple of (profile, target key).  The target key names the lock and
        checkpoint files.

    Raises:
        ProfileNotFoundError: If nothing is configured or the profile is
            unknown.
    """
    settings = settings or get_settings()
    profile_name = profile_name or settings.db_profile

    config = None
    if settings.db_config_path.exists():
        config = load_db_config(settings.db_config_path)
        profile_name = profile_name or config.default_profile
    elif profile_name:
        raise ProfileNotFoundError(
            f"Profile '{profile_name}' requested but {settings.db_config_path} "
            f"does not exist"
        )

    if profile_name:
        if profile_name not in config.profiles:
            available = ", ".join(config.profiles) or "(none)"
            raise ProfileNotFoundError(
                f"Profile '{profile_name}' not found. Available: {available}"
            )
        logger.debug("Using profile %s", profile_name)
        return config.profiles[profile_name], profile_name

    if settings.supabase_url and settings.supabase_service_role_key:
        profile = DatabaseProfile(
            url=settings.supabase_url,
            provider="supabase",
            key=settings.supabase_service_role_key,
        )
        return profile, "supabase-env"

    raise ProfileNotFoundError(
        "No restore target configured.\n"
        "Either:\n"
        "  1. Create db.toml with [profiles.<name>] and set DB_PROFILE=<name>\n"
        "  2. Set SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY"
    )


def get_adapter(
    profile_name: str | None = None,
    settings: RestoreSettings | None = None,
) -> tuple[RestoreStore, str]:
    """Create the store for the active target.

    See ``resolve_profile`` for the lookup order.

    Returns:
        Tuple of (store, target key).

    Example:
        store, target = get_adapter("staging")
        async with RestoreLock(target, settings.state_dir):
            ...
    """
    settings = settings or get_settings()
    profile, target = resolve_profile(profile_name, settings)
    return create_adapter(profile, settings), target
