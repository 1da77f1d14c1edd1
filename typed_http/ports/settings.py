"""Settings port definition (DTO)."""

from dataclasses import dataclass, field

from typed_http.ports.logger import LogLevel

__all__ = ["SettingsPort"]


@dataclass
class SettingsPort:
    """Runtime settings for the request pipeline.

    Decouples the core from concrete configuration sources, enabling
    easy testing and implementation swapping.

    Attributes:
        max_attempts: Attempts per logical request (1 disables retries).
        retry_base_delay_sec: First backoff delay; doubles on each retry.
        timeout_sec: Per-attempt transport timeout.
        log_level: Verbosity of the network logger.
        default_headers: Headers added to every request by an interceptor.
    """

    max_attempts: int = 3
    retry_base_delay_sec: float = 0.5
    timeout_sec: float = 30.0
    log_level: LogLevel = LogLevel.MINIMAL
    default_headers: dict[str, str] = field(default_factory=dict)
