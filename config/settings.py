"""
Central configuration using Pydantic BaseSettings.

Validates all env vars at startup (fail-fast).

Usage:
    from config.settings import get_settings

    settings = get_settings()
    print(settings.vault.addr)

Lazy initialization: get_settings() creates the singleton on first call.
Tests can reset via get_settings.cache_clear().
"""

from functools import lru_cache

from pydantic import SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings


# =============================================================================
# Nested Settings Groups
# =============================================================================


class LoggingSettings(BaseSettings):
    """Log output configuration."""

    model_config = {"env_prefix": "LOG_", "extra": "ignore"}

    level: str = "INFO"
    format: str = "json"
    file: str = ""

    @field_validator("format")
    @classmethod
    def _check_format(cls, value: str) -> str:
        value = value.lower()
        if value not in ("json", "text"):
            raise ValueError(f"LOG_FORMAT must be 'json' or 'text', got {value!r}")
        return value


class VaultSettings(BaseSettings):
    """HashiCorp Vault connection configuration."""

    model_config = {"env_prefix": "VAULT_", "extra": "ignore"}

    enabled: bool = False
    addr: str = "http://localhost:8200"
    token: SecretStr = SecretStr("")  # Token auth (dev)
    role_id: str = ""  # AppRole auth (production)
    secret_id: SecretStr = SecretStr("")
    mount_path: str = "secret"
    namespace: str = ""

    @model_validator(mode="after")
    def _require_auth(self):
        """An enabled Vault needs token or AppRole credentials."""
        if not self.enabled:
            return self
        has_token = bool(self.token.get_secret_value())
        has_approle = bool(self.role_id and self.secret_id.get_secret_value())
        if not (has_token or has_approle):
            raise ValueError(
                "VAULT_ENABLED requires VAULT_TOKEN or VAULT_ROLE_ID and VAULT_SECRET_ID"
            )
        return self


class SSHSecretSettings(BaseSettings):
    """Where the OS and rescue SSH secrets live, and their data key names."""

    model_config = {"env_prefix": "SSH_", "extra": "ignore"}

    os_secret_path: str = ""  # Empty: no OS credential configured
    rescue_secret_path: str = ""  # Empty: no rescue credential configured

    name_key: str = "name"
    public_key_key: str = "public-key"
    private_key_key: str = "private-key"

    @property
    def required_keys(self) -> tuple[str, str, str]:
        return (self.name_key, self.public_key_key, self.private_key_key)


class EventSettings(BaseSettings):
    """Audit event trail configuration."""

    model_config = {"env_prefix": "EVENT_", "extra": "ignore"}

    log_file: str = ""  # Empty: keep events in memory only
    max_events: int = 500
    redaction_enabled: bool = True


# =============================================================================
# Root Settings
# =============================================================================


class AppSettings(BaseSettings):
    """Root application settings composing all sub-settings."""

    model_config = {"env_prefix": "", "extra": "ignore", "env_file": ".env", "env_file_encoding": "utf-8"}

    # Nested groups (initialized separately to support env_prefix)
    logging: LoggingSettings = None  # type: ignore[assignment]
    vault: VaultSettings = None  # type: ignore[assignment]
    ssh: SSHSecretSettings = None  # type: ignore[assignment]
    events: EventSettings = None  # type: ignore[assignment]

    @model_validator(mode="before")
    @classmethod
    def _init_nested(cls, values):
        """Initialize nested settings from environment."""
        if values.get("logging") is None:
            values["logging"] = LoggingSettings()
        if values.get("vault") is None:
            values["vault"] = VaultSettings()
        if values.get("ssh") is None:
            values["ssh"] = SSHSecretSettings()
        if values.get("events") is None:
            values["events"] = EventSettings()
        return values


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    """
    Get the application settings singleton.

    Lazy-initialized on first call. Validates all env vars (fail-fast).
    Tests can reset via: get_settings.cache_clear()
    """
    return AppSettings()
