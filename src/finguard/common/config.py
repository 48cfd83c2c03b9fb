"""Finguard configuration via pydantic-settings."""

import json
import warnings
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

_INSECURE_DEFAULTS = {
    "secret_key": "insecure-dev-key-change-me",
    "hmac_key": "insecure-hmac-key-change-me",
    "vault_key": "insecure-vault-key-change-me",
    "billing_api_key": "insecure-billing-key-change-me",
}


def _parse_keyring(raw_value: str, env_name: str) -> dict[int, str]:
    try:
        raw = json.loads(raw_value)
    except (json.JSONDecodeError, TypeError) as exc:
        raise ValueError(
            f"{env_name} must be valid JSON (e.g. '{{\"0\": \"key\"}}'), got: {raw_value!r}"
        ) from exc
    return {int(k): v for k, v in raw.items()}


class FinguardSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="FINGUARD_")

    environment: str = "development"
    secret_key: str = "insecure-dev-key-change-me"

    # Audit signing keyring: JSON dict mapping version (int) to key string.
    # e.g. '{"0": "old-key", "1": "new-key"}'
    # When set, hmac_key is ignored.  When empty, hmac_key is used as version 0.
    hmac_key: str = "insecure-hmac-key-change-me"
    hmac_keys: str = ""

    # Credential vault master secrets, same keyring format as hmac_keys.
    vault_key: str = "insecure-vault-key-change-me"
    vault_keys: str = ""

    # Database
    db_url: str = "sqlite+aiosqlite:///./data/finguard.db"

    # API
    api_title: str = "Finguard"
    api_version: str = "0.1.0"
    billing_api_key: str = "insecure-billing-key-change-me"
    host: str = "0.0.0.0"
    port: int = 8080
    api_prefix: str = ""
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:5173"]
    principal_token_ttl: int = 3600  # seconds
    log_level: str = "INFO"

    # Provisioning defaults
    default_plan: str = "default"
    default_plan_amount: str = "0.00"
    renewal_days: int = 30
    strict_tax_id: bool = False

    # Pagination
    default_page_size: int = 50
    max_page_size: int = 200

    @property
    def hmac_keyring(self) -> dict[int, str]:
        """Return the audit signing keyring as {version_int: key_str}.

        If hmac_keys is set, parse it as JSON.
        Otherwise, fall back to scalar hmac_key as version 0.
        """
        if self.hmac_keys:
            return _parse_keyring(self.hmac_keys, "FINGUARD_HMAC_KEYS")
        return {0: self.hmac_key}

    @property
    def current_hmac_key(self) -> str:
        """Return the HMAC key for the current (highest) version."""
        ring = self.hmac_keyring
        return ring[max(ring.keys())]

    @property
    def vault_keyring(self) -> dict[int, str]:
        """Return the credential vault keyring as {version_int: secret}."""
        if self.vault_keys:
            return _parse_keyring(self.vault_keys, "FINGUARD_VAULT_KEYS")
        return {0: self.vault_key}

    @property
    def current_vault_version(self) -> int:
        return max(self.vault_keyring.keys())

    def validate_for_production(self) -> None:
        """Raise if insecure defaults are used in non-development environments."""
        insecure_fields = [
            field
            for field, default in _INSECURE_DEFAULTS.items()
            if getattr(self, field) == default
        ]

        if self.environment != "development" and insecure_fields:
            env_vars = ", ".join(f"FINGUARD_{f.upper()}" for f in insecure_fields)
            raise RuntimeError(
                f"Insecure default values detected in '{self.environment}' environment. "
                f"Set these environment variables to secure values: {env_vars}. "
                "Generate secrets with: python -c \"import secrets; print(secrets.token_urlsafe(48))\""
            )

        if insecure_fields:
            warnings.warn(
                "Using insecure default keys — set FINGUARD_SECRET_KEY, FINGUARD_HMAC_KEY, "
                "FINGUARD_VAULT_KEY, FINGUARD_BILLING_API_KEY for production",
                UserWarning,
                stacklevel=2,
            )


@lru_cache
def get_settings() -> FinguardSettings:
    settings = FinguardSettings()
    settings.validate_for_production()
    return settings
