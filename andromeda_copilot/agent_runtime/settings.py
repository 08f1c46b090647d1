"""Service configuration loaded from ANDROMEDA_* environment variables."""

from __future__ import annotations

from pathlib import Path

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

BUNDLED_WEB_DIR = Path(__file__).resolve().parent.parent / "web"
"""Static chat client shipped inside the package."""


class CopilotSettings(BaseSettings):
    """Andromeda Copilot settings.

    All fields are read from environment variables with the ``ANDROMEDA_``
    prefix.  For example, ``ANDROMEDA_LOG_LEVEL=DEBUG`` maps to ``log_level``.

    The provider credential is the exception: it is read from
    ``ANDROMEDA_OPENAI_API_KEY`` or, failing that, the conventional
    ``OPENAI_API_KEY``.
    """

    model_config = SettingsConfigDict(
        env_prefix="ANDROMEDA_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # -- Logging ---------------------------------------------------------------
    log_level: str = "INFO"

    # -- Workspaces ------------------------------------------------------------
    registry_root: str = "./workspaces"
    """Directory holding ``workspaces.json`` and auto-generated workspace dirs."""

    default_workspace: str = "./workspace"
    """Working directory used when no workspace is current."""

    # -- Provider --------------------------------------------------------------
    openai_api_key: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("ANDROMEDA_OPENAI_API_KEY", "OPENAI_API_KEY"),
    )
    model: str = "gpt-4o"
    temperature: float = 0.7
    max_tokens: int = 2000
    max_steps: int = 10
    """Upper bound on model requests (tool rounds) per user turn."""

    # -- Tools -----------------------------------------------------------------
    runtime_command: str = "andromeda"
    """External code-execution runtime, invoked as ``<cmd> run <file>``."""

    typecheck_command: str = "deno check"
    fetch_timeout: float = 30.0

    # -- Server ----------------------------------------------------------------
    host: str = "0.0.0.0"  # noqa: S104
    port: int = 8080
    web_dir: str = str(BUNDLED_WEB_DIR)

    # -- Helpers ---------------------------------------------------------------

    def resolve_api_key(self) -> str | None:
        """Return the configured credential as plain text, if any."""
        if self.openai_api_key is None:
            return None
        return self.openai_api_key.get_secret_value() or None


def get_settings() -> CopilotSettings:
    """Return a cached settings instance.

    Reads from environment variables and ``.env`` on first call, then returns
    the same object.  Call ``_get_settings_cached.cache_clear()`` in tests to force a
    re-read after overriding env vars.
    """
    return _get_settings_cached()


def _get_settings_cached() -> CopilotSettings:
    """Inner function wrapped by lru_cache (allows type-safe cache_clear)."""
    return CopilotSettings()


# Apply lru_cache at runtime so the function is only called once.
from functools import lru_cache  # noqa: E402

_get_settings_cached = lru_cache(maxsize=1)(_get_settings_cached)
