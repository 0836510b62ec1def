"""
Pydantic models for runtime settings.

Mirrors the defaults dict in loader.py, providing typed access
to all reaper.yml settings via ReaperConfig.settings().
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from reaper.config.settings import DEFAULT_SLEEP_INTERVAL


class SchedulerConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    interval: float = Field(default=DEFAULT_SLEEP_INTERVAL, ge=0)
    isolate_broker_failures: bool = True


class BrokerApiConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    url_template: str = "https://{broker}/api/v1"
    timeout: float = 30
    verify_tls: bool = True
    token_lifetime: int = 3500


class CircuitBreakerConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    failure_threshold: int = 5
    recovery_timeout: float = 30.0


class MetricsConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    enabled: bool = False
    port: int = 9108


class LoggingConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    level: str = "INFO"


class ReaperSettings(BaseModel):
    """Root settings model mirroring reaper.yml structure."""

    model_config = ConfigDict(extra="ignore")

    scheduler: SchedulerConfig = SchedulerConfig()
    broker_api: BrokerApiConfig = BrokerApiConfig()
    circuit_breaker: CircuitBreakerConfig = CircuitBreakerConfig()
    metrics: MetricsConfig = MetricsConfig()
    logging: LoggingConfig = LoggingConfig()
