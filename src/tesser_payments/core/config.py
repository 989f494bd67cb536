"""
Configuration objects for the Tesser and Circle sandbox clients.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from .environment import build_environment

__all__ = [
    "CircleConfig",
    "ConfigError",
    "TesserConfig",
    "load_circle_config",
    "load_tesser_config",
]

DEFAULT_TESSER_BASE_URL = "https://sandbox.tesserx.co"
DEFAULT_TESSER_AUTH_URL = "https://dev-awqy75wdabpsnsvu.us.auth0.com/oauth/token"
DEFAULT_CIRCLE_BASE_URL = "https://api-sandbox.circle.com"

VARIANT_CHOICES = ("A", "B", "BOTH")

_TESSER_FIELD_TO_ENV_KEY = {
    "base_url": "TESSER_BASE_URL",
    "auth_url": "TESSER_AUTH_URL",
    "client_id": "TESSER_CLIENT_ID",
    "client_secret": "TESSER_CLIENT_SECRET",
    "from_account_id": "TESSER_FROM_ACCOUNT_ID",
    "to_account_id": "TESSER_TO_ACCOUNT_ID",
    "beneficiary_account_id": "BENEFICIARY_ACCOUNT_ID",
    "beneficiary_wallet_address": "BENEFICIARY_WALLET_ADDRESS",
    "fallback_funding_bank_account_id": "FALLBACK_FUNDING_BANK_ACCOUNT_ID",
    "enable_variants": "ENABLE_VARIANTS",
    "retry_max_attempts": "TESSER_RETRY_MAX_ATTEMPTS",
    "retry_interval_ms": "TESSER_RETRY_INTERVAL_MS",
    "request_timeout_seconds": "TESSER_REQUEST_TIMEOUT_SECONDS",
}

_CIRCLE_FIELD_TO_ENV_KEY = {
    "base_url": "CIRCLE_BASE_URL",
    "api_key": "CIRCLE_API_KEY",
    "from_wallet_id": "CIRCLE_FROM_WALLET_ID",
    "to_wallet_id": "CIRCLE_TO_WALLET_ID",
    "request_timeout_seconds": "CIRCLE_REQUEST_TIMEOUT_SECONDS",
}


class ConfigError(Exception):
    """Raised when the supplied configuration is invalid."""


def _optional(values: Mapping[str, str], key: str) -> Optional[str]:
    value = values.get(key)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _required(values: Mapping[str, str], key: str) -> str:
    value = _optional(values, key)
    if value is None:
        raise ConfigError(f"{key} is not set")
    return value


def _integer(values: Mapping[str, str], key: str, default: int, minimum: int) -> int:
    raw = _optional(values, key)
    if raw is None:
        return default
    try:
        parsed = int(raw)
    except ValueError as exc:
        raise ConfigError(f"{key} must be an integer, got '{raw}'") from exc
    if parsed < minimum:
        raise ConfigError(f"{key} must be at least {minimum}, got {parsed}")
    return parsed


def _field_overrides(
    mapping: Mapping[str, str], explicit: Mapping[str, Any]
) -> Dict[str, str]:
    overrides: Dict[str, str] = {}
    for field_name, value in explicit.items():
        if value is None:
            continue
        try:
            env_key = mapping[field_name]
        except KeyError as exc:
            raise TypeError(f"Unknown configuration field '{field_name}'") from exc
        overrides[env_key] = str(value)
    return overrides


def _require_field(config: Any, mapping: Mapping[str, str], field_name: str) -> str:
    value = getattr(config, field_name)
    if not value:
        raise ConfigError(f"{mapping[field_name]} is not set")
    return value


@dataclass(frozen=True)
class TesserConfig:
    client_id: str
    client_secret: str
    base_url: str = DEFAULT_TESSER_BASE_URL
    auth_url: str = DEFAULT_TESSER_AUTH_URL
    from_account_id: Optional[str] = None
    to_account_id: Optional[str] = None
    beneficiary_account_id: Optional[str] = None
    beneficiary_wallet_address: Optional[str] = None
    fallback_funding_bank_account_id: Optional[str] = None
    enable_variants: str = "BOTH"
    retry_max_attempts: int = 60
    retry_interval_ms: int = 10_000
    request_timeout_seconds: int = 30

    @property
    def run_variant_a(self) -> bool:
        return self.enable_variants in ("A", "BOTH")

    @property
    def run_variant_b(self) -> bool:
        return self.enable_variants in ("B", "BOTH")

    def require(self, field_name: str) -> str:
        """Return an optional field, raising :class:`ConfigError` if it is unset."""
        return _require_field(self, _TESSER_FIELD_TO_ENV_KEY, field_name)

    @classmethod
    def from_mapping(cls, values: Mapping[str, str]) -> "TesserConfig":
        client_id = _optional(values, "TESSER_CLIENT_ID")
        client_secret = _optional(values, "TESSER_CLIENT_SECRET")
        if client_id is None or client_secret is None:
            raise ConfigError(
                "Missing TESSER_CLIENT_ID or TESSER_CLIENT_SECRET in environment"
            )

        enable_variants = (_optional(values, "ENABLE_VARIANTS") or "BOTH").upper()
        if enable_variants not in VARIANT_CHOICES:
            raise ConfigError(
                f"ENABLE_VARIANTS must be one of {', '.join(VARIANT_CHOICES)}, "
                f"got '{enable_variants}'"
            )

        return cls(
            client_id=client_id,
            client_secret=client_secret,
            base_url=(
                _optional(values, "TESSER_BASE_URL") or DEFAULT_TESSER_BASE_URL
            ).rstrip("/"),
            auth_url=_optional(values, "TESSER_AUTH_URL") or DEFAULT_TESSER_AUTH_URL,
            from_account_id=_optional(values, "TESSER_FROM_ACCOUNT_ID"),
            to_account_id=_optional(values, "TESSER_TO_ACCOUNT_ID"),
            beneficiary_account_id=_optional(values, "BENEFICIARY_ACCOUNT_ID"),
            beneficiary_wallet_address=_optional(values, "BENEFICIARY_WALLET_ADDRESS"),
            fallback_funding_bank_account_id=_optional(
                values, "FALLBACK_FUNDING_BANK_ACCOUNT_ID"
            ),
            enable_variants=enable_variants,
            retry_max_attempts=_integer(values, "TESSER_RETRY_MAX_ATTEMPTS", 60, 1),
            retry_interval_ms=_integer(values, "TESSER_RETRY_INTERVAL_MS", 10_000, 0),
            request_timeout_seconds=_integer(
                values, "TESSER_REQUEST_TIMEOUT_SECONDS", 30, 1
            ),
        )

    @classmethod
    def from_env(
        cls,
        *,
        env_file: Optional[str] = ".env",
        overrides: Optional[Mapping[str, str]] = None,
        base: Optional[Mapping[str, str]] = None,
        **fields: Any,
    ) -> "TesserConfig":
        merged_overrides = dict(overrides or {})
        merged_overrides.update(_field_overrides(_TESSER_FIELD_TO_ENV_KEY, fields))
        environment = build_environment(
            env_file=env_file, base=base, overrides=merged_overrides
        )
        return cls.from_mapping(environment.variables)


@dataclass(frozen=True)
class CircleConfig:
    api_key: str
    base_url: str = DEFAULT_CIRCLE_BASE_URL
    from_wallet_id: Optional[str] = None
    to_wallet_id: Optional[str] = None
    request_timeout_seconds: int = 30

    def require(self, field_name: str) -> str:
        return _require_field(self, _CIRCLE_FIELD_TO_ENV_KEY, field_name)

    @classmethod
    def from_mapping(cls, values: Mapping[str, str]) -> "CircleConfig":
        return cls(
            api_key=_required(values, "CIRCLE_API_KEY"),
            base_url=(
                _optional(values, "CIRCLE_BASE_URL") or DEFAULT_CIRCLE_BASE_URL
            ).rstrip("/"),
            from_wallet_id=_optional(values, "CIRCLE_FROM_WALLET_ID"),
            to_wallet_id=_optional(values, "CIRCLE_TO_WALLET_ID"),
            request_timeout_seconds=_integer(
                values, "CIRCLE_REQUEST_TIMEOUT_SECONDS", 30, 1
            ),
        )

    @classmethod
    def from_env(
        cls,
        *,
        env_file: Optional[str] = ".env",
        overrides: Optional[Mapping[str, str]] = None,
        base: Optional[Mapping[str, str]] = None,
        **fields: Any,
    ) -> "CircleConfig":
        merged_overrides = dict(overrides or {})
        merged_overrides.update(_field_overrides(_CIRCLE_FIELD_TO_ENV_KEY, fields))
        environment = build_environment(
            env_file=env_file, base=base, overrides=merged_overrides
        )
        return cls.from_mapping(environment.variables)


def load_tesser_config(
    *,
    env_file: Optional[str] = ".env",
    overrides: Optional[Mapping[str, str]] = None,
    base: Optional[Mapping[str, str]] = None,
    **fields: Any,
) -> TesserConfig:
    """
    Convenience wrapper that mirrors :meth:`TesserConfig.from_env`.

    Keyword fields (``client_id=...``, ``retry_interval_ms=...``) take
    precedence over both the environment and ``overrides``.
    """
    return TesserConfig.from_env(
        env_file=env_file, overrides=overrides, base=base, **fields
    )


def load_circle_config(
    *,
    env_file: Optional[str] = ".env",
    overrides: Optional[Mapping[str, str]] = None,
    base: Optional[Mapping[str, str]] = None,
    **fields: Any,
) -> CircleConfig:
    """Convenience wrapper that mirrors :meth:`CircleConfig.from_env`."""
    return CircleConfig.from_env(
        env_file=env_file, overrides=overrides, base=base, **fields
    )
