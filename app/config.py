"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files

JOB_STORE_BACKENDS = {"database", "memory"}
LLM_ADAPTERS = {"anthropic", "openai", "mock"}


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_optional_str_env(name: str) -> str | None:
    """
    Read an optional string value from environment variables.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


@dataclass(frozen=True)
class AuditPipelineSettings:
    """
    Budgets for the crawl and competitor phases of one audit run.
    """

    max_pages: int = 50
    max_competitors: int = 5
    competitor_group_size: int = 3
    competitor_batch_timeout_seconds: float = 60.0
    competitor_crawl_timeout_seconds: float = 45.0
    good_score_threshold: int = 70


@dataclass(frozen=True)
class RetentionSettings:
    ttl_seconds: int = 3600
    paid_ttl_seconds: int = 86400
    purge_interval_minutes: int = 15


@dataclass(frozen=True)
class JobStoreSettings:
    backend: str = "database"


@dataclass(frozen=True)
class CrawlerSettings:
    """
    HTTP behavior of the website crawler.
    """

    user_agent: str = "Mozilla/5.0 (compatible; MessagingAuditBot/1.0)"
    page_timeout_seconds: float = 5.0
    max_retries: int = 2
    backoff_initial_seconds: float = 0.5
    backoff_multiplier: float = 2.0
    polite_delay_seconds: float = 0.1
    allow_private_hosts: bool = False
    render_service_url: str | None = None
    render_service_api_key: str | None = None
    render_timeout_seconds: float = 30.0


@dataclass(frozen=True)
class LLMSettings:
    adapter: str = "anthropic"
    model: str = "claude-sonnet-4-20250514"
    max_tokens: int = 4096
    temperature: float = 0.2
    api_key: str | None = None
    base_url: str | None = None
    max_retries: int = 1
    request_timeout_seconds: float = 90.0


@dataclass(frozen=True)
class PaymentSettings:
    confirmation_token: str | None = None


@lru_cache(maxsize=1)
def get_audit_pipeline_settings() -> AuditPipelineSettings:
    """
    Return cached pipeline budgets from environment variables.
    """

    return AuditPipelineSettings(
        max_pages=max(1, _get_int_env("AUDIT_MAX_PAGES", 50)),
        max_competitors=max(1, _get_int_env("AUDIT_MAX_COMPETITORS", 5)),
        competitor_group_size=max(1, _get_int_env("AUDIT_COMPETITOR_GROUP_SIZE", 3)),
        competitor_batch_timeout_seconds=max(
            1.0, _get_float_env("AUDIT_COMPETITOR_BATCH_TIMEOUT_SECONDS", 60.0)
        ),
        competitor_crawl_timeout_seconds=max(
            1.0, _get_float_env("AUDIT_COMPETITOR_CRAWL_TIMEOUT_SECONDS", 45.0)
        ),
        good_score_threshold=min(100, max(0, _get_int_env("AUDIT_GOOD_SCORE_THRESHOLD", 70))),
    )


@lru_cache(maxsize=1)
def get_retention_settings() -> RetentionSettings:
    return RetentionSettings(
        ttl_seconds=max(60, _get_int_env("AUDIT_TTL_SECONDS", 3600)),
        paid_ttl_seconds=max(60, _get_int_env("AUDIT_PAID_TTL_SECONDS", 86400)),
        purge_interval_minutes=max(1, _get_int_env("AUDIT_PURGE_INTERVAL_MINUTES", 15)),
    )


@lru_cache(maxsize=1)
def get_job_store_settings() -> JobStoreSettings:
    backend = _get_str_env("JOB_STORE_BACKEND", "database").lower()
    if backend not in JOB_STORE_BACKENDS:
        raise RuntimeError(
            f"JOB_STORE_BACKEND '{backend}' is not valid. "
            f"Allowed values: {sorted(JOB_STORE_BACKENDS)}."
        )
    return JobStoreSettings(backend=backend)


@lru_cache(maxsize=1)
def get_crawler_settings() -> CrawlerSettings:
    """
    Return crawler HTTP settings from environment variables.
    """

    return CrawlerSettings(
        user_agent=_get_str_env(
            "CRAWLER_USER_AGENT", "Mozilla/5.0 (compatible; MessagingAuditBot/1.0)"
        ),
        page_timeout_seconds=max(1.0, _get_float_env("CRAWLER_PAGE_TIMEOUT_SECONDS", 5.0)),
        max_retries=max(0, _get_int_env("CRAWLER_MAX_RETRIES", 2)),
        backoff_initial_seconds=max(0.1, _get_float_env("CRAWLER_BACKOFF_INITIAL_SECONDS", 0.5)),
        backoff_multiplier=max(1.0, _get_float_env("CRAWLER_BACKOFF_MULTIPLIER", 2.0)),
        polite_delay_seconds=max(0.0, _get_float_env("CRAWLER_POLITE_DELAY_SECONDS", 0.1)),
        allow_private_hosts=_get_bool_env("CRAWLER_ALLOW_PRIVATE_HOSTS", False),
        render_service_url=_get_optional_str_env("RENDER_SERVICE_URL"),
        render_service_api_key=_get_optional_str_env("RENDER_SERVICE_API_KEY"),
        render_timeout_seconds=max(1.0, _get_float_env("RENDER_SERVICE_TIMEOUT_SECONDS", 30.0)),
    )


@lru_cache(maxsize=1)
def get_llm_settings() -> LLMSettings:
    """
    Return reasoning-service settings. The API key falls back to the
    provider-specific variable when LLM_API_KEY is not set.
    """

    adapter = _get_str_env("LLM_ADAPTER", "anthropic").lower()
    provider_key_env = "OPENAI_API_KEY" if adapter == "openai" else "ANTHROPIC_API_KEY"
    default_model = "gpt-4o-mini" if adapter == "openai" else "claude-sonnet-4-20250514"
    return LLMSettings(
        adapter=adapter,
        model=_get_str_env("LLM_MODEL", default_model),
        max_tokens=max(256, _get_int_env("LLM_MAX_TOKENS", 4096)),
        temperature=min(1.0, max(0.0, _get_float_env("LLM_TEMPERATURE", 0.2))),
        api_key=_get_optional_str_env("LLM_API_KEY") or _get_optional_str_env(provider_key_env),
        base_url=_get_optional_str_env("LLM_BASE_URL"),
        max_retries=max(0, _get_int_env("LLM_MAX_RETRIES", 1)),
        request_timeout_seconds=max(5.0, _get_float_env("LLM_REQUEST_TIMEOUT_SECONDS", 90.0)),
    )


@lru_cache(maxsize=1)
def get_payment_settings() -> PaymentSettings:
    return PaymentSettings(
        confirmation_token=_get_optional_str_env("PAYMENT_CONFIRMATION_TOKEN"),
    )
