"""Ledger configuration for pyvinreg."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pyvinreg.exceptions import VinRegConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_number(env_key: str, value: str, cast: type[int] | type[float]) -> int | float:
    try:
        return cast(value)
    except ValueError as exc:
        raise VinRegConfigError(f"{env_key} must be a number, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class LedgerConfig:
    """Ledger configuration.

    Parameters
    ----------
    strict_vin : bool
        Require ISO 3779 VINs (17 characters, no ``I``/``O``/``Q``).
        When disabled any non-empty VIN is accepted.
    min_model_year : int
        Oldest manufacture year accepted by ``register``.
    retain_completed_transfers : bool
        Keep the accepted transfer request visible through
        ``get_pending_transfer`` (``completed=True``) until the next
        transfer is initiated.  When disabled the request is dropped
        on completion.
    event_log_size : int
        Number of recent events kept in the in-memory audit log.
    mqtt_host : str or None
        Broker host for the MQTT notification sink.  ``None`` disables it.
    mqtt_port : int
        Broker port.
    mqtt_topic : str
        Topic prefix; events are published to ``<topic>/<event_type>``.
    mqtt_username : str or None
        Broker username.
    mqtt_password : str or None
        Broker password.
    mqtt_qos : int
        QoS level used for published events.
    webhook_url : str or None
        URL receiving a JSON POST per event.  ``None`` disables it.
    webhook_secret : str or None
        Shared secret used to sign webhook bodies (HMAC-SHA256).
    webhook_timeout : float
        Total timeout in seconds for a single webhook delivery.
    """

    strict_vin: bool = False
    min_model_year: int = 1886
    retain_completed_transfers: bool = True
    event_log_size: int = 1000
    mqtt_host: str | None = None
    mqtt_port: int = 1883
    mqtt_topic: str = "vinreg/events"
    mqtt_username: str | None = None
    mqtt_password: str | None = None
    mqtt_qos: int = 0
    webhook_url: str | None = None
    webhook_secret: str | None = None
    webhook_timeout: float = 10.0

    def __post_init__(self) -> None:
        if self.event_log_size < 0:
            raise VinRegConfigError(f"event_log_size must be >= 0, got {self.event_log_size}")
        if self.mqtt_qos not in (0, 1, 2):
            raise VinRegConfigError(f"mqtt_qos must be 0, 1 or 2, got {self.mqtt_qos}")
        if self.webhook_timeout <= 0:
            raise VinRegConfigError(f"webhook_timeout must be positive, got {self.webhook_timeout}")

    @classmethod
    def from_env(cls, **overrides: Any) -> LedgerConfig:
        """Create configuration from environment variables.

        Reads optional ``VINREG_*`` variables.  Explicit keyword
        arguments override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        LedgerConfig
            Populated configuration.
        """
        env = os.environ

        _ENV_STR_MAP = {
            "VINREG_MQTT_HOST": "mqtt_host",
            "VINREG_MQTT_TOPIC": "mqtt_topic",
            "VINREG_MQTT_USERNAME": "mqtt_username",
            "VINREG_MQTT_PASSWORD": "mqtt_password",
            "VINREG_WEBHOOK_URL": "webhook_url",
            "VINREG_WEBHOOK_SECRET": "webhook_secret",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        _ENV_NUMBER_MAP: dict[str, tuple[str, type[int] | type[float]]] = {
            "VINREG_MIN_MODEL_YEAR": ("min_model_year", int),
            "VINREG_EVENT_LOG_SIZE": ("event_log_size", int),
            "VINREG_MQTT_PORT": ("mqtt_port", int),
            "VINREG_MQTT_QOS": ("mqtt_qos", int),
            "VINREG_WEBHOOK_TIMEOUT": ("webhook_timeout", float),
        }
        for env_key, (field_name, cast) in _ENV_NUMBER_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = _env_number(env_key, val, cast)

        if "strict_vin" not in overrides:
            config_kwargs["strict_vin"] = _env_bool(env.get("VINREG_STRICT_VIN"), False)

        if "retain_completed_transfers" not in overrides:
            config_kwargs["retain_completed_transfers"] = _env_bool(
                env.get("VINREG_RETAIN_COMPLETED_TRANSFERS"),
                True,
            )

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
