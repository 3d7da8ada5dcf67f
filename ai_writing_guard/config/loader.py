"""
Configuration management and loading.

Settings come from an optional YAML file, then environment variables
override individual values. API keys are only ever read from the
environment.
"""

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from ai_writing_guard.core.quota import QuotaPolicy
from ai_writing_guard.providers import BACKENDS
from ai_writing_guard.providers.base import DEFAULT_TIMEOUT_SECONDS, ProviderSettings
from ai_writing_guard.storage.db import DEFAULT_DB_PATH

DEFAULT_PRIMARY_MODEL = "gemini-flash-latest"
DEFAULT_FALLBACK_MODEL = "text-bison-001"
DEFAULT_BACKEND = "gemini"

# Checked in order; the first non-empty value wins
API_KEY_ENV_VARS = {
    "gemini": ("GENAI_API_KEY", "GEMINI_API_KEY"),
    "openai": ("OPENAI_API_KEY",),
}
PRIMARY_MODEL_ENV_VARS = ("GENAI_MODEL", "GEMINI_MODEL")
FALLBACK_MODEL_ENV_VARS = ("GENAI_FALLBACK_MODEL", "GEMINI_FALLBACK_MODEL")

PRODUCTION = "production"


@dataclass(frozen=True)
class ModelSlotConfig:
    """Backend and model for one slot (primary or fallback)."""
    backend: str
    model: str

    def __post_init__(self):
        if self.backend not in BACKENDS:
            raise ValueError(f"backend must be one of: {sorted(BACKENDS)}")
        if not self.model or not self.model.strip():
            raise ValueError("model is required and cannot be empty")


@dataclass(frozen=True)
class ProviderConfig:
    primary: ModelSlotConfig
    fallback: Optional[ModelSlotConfig]
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS

    def __post_init__(self):
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0")


@dataclass(frozen=True)
class QuotaConfig:
    """Request ceilings per tier and for anonymous traffic."""
    free_daily: int = 50
    premium_daily: int = 500
    anonymous_window_seconds: float = 15 * 60
    anonymous_max_requests: int = 100

    def __post_init__(self):
        if self.free_daily <= 0:
            raise ValueError("free_daily must be > 0")
        if self.premium_daily <= 0:
            raise ValueError("premium_daily must be > 0")
        if self.anonymous_window_seconds <= 0:
            raise ValueError("anonymous window must be > 0")
        if self.anonymous_max_requests <= 0:
            raise ValueError("anonymous max_requests must be > 0")

    def to_policy(self) -> QuotaPolicy:
        return QuotaPolicy(
            free_daily=self.free_daily,
            premium_daily=self.premium_daily,
            anonymous_max_requests=self.anonymous_max_requests,
            anonymous_window_seconds=self.anonymous_window_seconds
        )


@dataclass(frozen=True)
class AppConfig:
    """Complete application configuration."""
    provider: ProviderConfig
    quota: QuotaConfig
    db_path: str = DEFAULT_DB_PATH
    environment: str = PRODUCTION

    @property
    def debug(self) -> bool:
        """Whether caller-visible errors may carry internal detail."""
        return self.environment != PRODUCTION


def default_config() -> AppConfig:
    return AppConfig(
        provider=ProviderConfig(
            primary=ModelSlotConfig(DEFAULT_BACKEND, DEFAULT_PRIMARY_MODEL),
            fallback=ModelSlotConfig(DEFAULT_BACKEND, DEFAULT_FALLBACK_MODEL)
        ),
        quota=QuotaConfig()
    )


def load_config(path: str) -> AppConfig:
    """Load and validate configuration from a YAML file.

    Unknown keys are rejected so a typo never silently falls back to a
    default ceiling or model.

    Args:
        path: Path to YAML configuration file

    Returns:
        Validated AppConfig

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

    if not raw_config:
        raise ValueError("Configuration file is empty")
    if not isinstance(raw_config, dict):
        raise ValueError("Configuration root must be a dictionary")

    _reject_unknown(raw_config, {'provider', 'quota', 'ledger', 'environment'}, "configuration")

    if 'provider' not in raw_config:
        raise ValueError("Missing required 'provider' section")
    provider = _parse_provider(_section(raw_config, 'provider'))

    quota = QuotaConfig()
    if 'quota' in raw_config:
        quota = _parse_quota(_section(raw_config, 'quota'))

    db_path = DEFAULT_DB_PATH
    if 'ledger' in raw_config:
        ledger_data = _section(raw_config, 'ledger')
        _reject_unknown(ledger_data, {'db_path'}, "ledger")
        db_path = ledger_data.get('db_path', DEFAULT_DB_PATH)
        if not isinstance(db_path, str) or not db_path.strip():
            raise ValueError("'ledger.db_path' must be a non-empty string")

    environment = raw_config.get('environment', PRODUCTION)
    if not isinstance(environment, str):
        raise ValueError("'environment' must be a string")

    return AppConfig(
        provider=provider,
        quota=quota,
        db_path=db_path,
        environment=environment.lower()
    )


def apply_env_overrides(config: AppConfig, environ: Optional[Mapping[str, str]] = None) -> AppConfig:
    """Overlay environment variables onto a configuration.

    Args:
        config: Base configuration
        environ: Environment mapping (defaults to os.environ)

    Returns:
        New AppConfig with overrides applied

    Raises:
        ValueError: If an override has an invalid value
    """
    env = os.environ if environ is None else environ
    provider = config.provider
    quota = config.quota

    primary_model = _first_env(env, PRIMARY_MODEL_ENV_VARS)
    if primary_model:
        provider = replace(provider, primary=replace(provider.primary, model=primary_model))

    fallback_model = _first_env(env, FALLBACK_MODEL_ENV_VARS)
    if fallback_model:
        fallback = provider.fallback or ModelSlotConfig(provider.primary.backend, fallback_model)
        provider = replace(provider, fallback=replace(fallback, model=fallback_model))

    overrides: Dict[str, Any] = {}
    if env.get('AI_RATE_LIMIT_FREE_TIER'):
        overrides['free_daily'] = _env_int(env, 'AI_RATE_LIMIT_FREE_TIER')
    if env.get('AI_RATE_LIMIT_PREMIUM_TIER'):
        overrides['premium_daily'] = _env_int(env, 'AI_RATE_LIMIT_PREMIUM_TIER')
    if env.get('RATE_LIMIT_WINDOW_MS'):
        overrides['anonymous_window_seconds'] = _env_int(env, 'RATE_LIMIT_WINDOW_MS') / 1000.0
    if env.get('RATE_LIMIT_MAX_REQUESTS'):
        overrides['anonymous_max_requests'] = _env_int(env, 'RATE_LIMIT_MAX_REQUESTS')
    if overrides:
        quota = replace(quota, **overrides)

    return replace(
        config,
        provider=provider,
        quota=quota,
        db_path=env.get('AI_WRITING_GUARD_DB') or config.db_path,
        environment=(env.get('APP_ENV') or config.environment).lower()
    )


def load_settings(path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> AppConfig:
    """YAML file (or built-in defaults) plus environment overrides."""
    base = load_config(path) if path else default_config()
    return apply_env_overrides(base, environ)


def provider_settings(
    slot: ModelSlotConfig,
    config: AppConfig,
    environ: Optional[Mapping[str, str]] = None
) -> ProviderSettings:
    """Build the explicit settings handed to a provider client."""
    env = os.environ if environ is None else environ
    return ProviderSettings(
        backend=slot.backend,
        api_key=_first_env(env, API_KEY_ENV_VARS[slot.backend]),
        timeout_seconds=config.provider.timeout_seconds
    )


def _section(raw: Dict, name: str) -> Dict:
    data = raw[name]
    if not isinstance(data, dict):
        raise ValueError(f"'{name}' must be a dictionary")
    return data


def _reject_unknown(data: Dict, allowed: set, path: str) -> None:
    unknown_keys = set(data.keys()) - allowed
    if unknown_keys:
        raise ValueError(f"Unknown keys in {path}: {unknown_keys}")


def _parse_slot(data: Any, path: str) -> ModelSlotConfig:
    if not isinstance(data, dict):
        raise ValueError(f"'{path}' must be a dictionary")
    _reject_unknown(data, {'backend', 'model'}, path)
    if 'model' not in data:
        raise ValueError(f"Missing required 'model' in {path}")
    backend = data.get('backend', DEFAULT_BACKEND)
    if backend not in BACKENDS:
        raise ValueError(f"'backend' in {path} must be one of: {sorted(BACKENDS)}")
    model = data['model']
    if not isinstance(model, str) or not model.strip():
        raise ValueError(f"'model' in {path} must be a non-empty string")
    return ModelSlotConfig(backend=backend, model=model.strip())


def _parse_provider(data: Dict) -> ProviderConfig:
    _reject_unknown(data, {'primary', 'fallback', 'timeout_seconds'}, "provider")
    if 'primary' not in data:
        raise ValueError("Missing required 'primary' in provider")

    primary = _parse_slot(data['primary'], "provider.primary")
    fallback = None
    if data.get('fallback') is not None:
        fallback = _parse_slot(data['fallback'], "provider.fallback")

    timeout = data.get('timeout_seconds', DEFAULT_TIMEOUT_SECONDS)
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
        raise ValueError("'timeout_seconds' in provider must be > 0")

    return ProviderConfig(primary=primary, fallback=fallback, timeout_seconds=float(timeout))


def _parse_quota(data: Dict) -> QuotaConfig:
    _reject_unknown(data, {'free_daily', 'premium_daily', 'anonymous'}, "quota")
    values: Dict[str, Any] = {}

    for key in ('free_daily', 'premium_daily'):
        if key in data:
            values[key] = _positive_int(data[key], f"quota.{key}")

    if 'anonymous' in data:
        anonymous = data['anonymous']
        if not isinstance(anonymous, dict):
            raise ValueError("'quota.anonymous' must be a dictionary")
        _reject_unknown(anonymous, {'window_minutes', 'max_requests'}, "quota.anonymous")
        if 'window_minutes' in anonymous:
            values['anonymous_window_seconds'] = 60 * _positive_int(
                anonymous['window_minutes'], "quota.anonymous.window_minutes"
            )
        if 'max_requests' in anonymous:
            values['anonymous_max_requests'] = _positive_int(
                anonymous['max_requests'], "quota.anonymous.max_requests"
            )

    return QuotaConfig(**values)


def _positive_int(value: Any, path: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValueError(f"'{path}' must be a positive integer")
    return value


def _env_int(env: Mapping[str, str], name: str) -> int:
    raw = env[name]
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be an integer, got {raw!r}")


def _first_env(env: Mapping[str, str], names) -> Optional[str]:
    for name in names:
        value = env.get(name)
        if value and value.strip():
            return value.strip()
    return None
