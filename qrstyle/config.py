"""Runtime settings read from QRSTYLE_* environment variables."""

import os
from dataclasses import dataclass

from qrstyle.capacity import ErrorLevel
from qrstyle.grid import PITCH_STRATEGIES

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


def _env_int(env, name: str, default: int, minimum: int) -> int:
    raw = env.get(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    return value


def _env_bool(env, name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


@dataclass(frozen=True)
class Settings:
    log_level: str = "INFO"
    log_file: str | None = None
    log_json: bool = False
    size: int = 300
    margin: int = 4
    error_level: ErrorLevel = ErrorLevel.M
    pitch_strategy: str = "period"

    def __post_init__(self):
        if self.pitch_strategy not in PITCH_STRATEGIES:
            raise ValueError(
                f"pitch strategy must be one of {', '.join(PITCH_STRATEGIES)}, got {self.pitch_strategy!r}"
            )

    @classmethod
    def from_env(cls, env=None) -> "Settings":
        """Build settings from ``env`` (defaults to ``os.environ``)."""
        env = os.environ if env is None else env
        level = env.get("QRSTYLE_ERROR_LEVEL")
        try:
            error_level = ErrorLevel.parse(level) if level else ErrorLevel.M
        except ValueError as exc:
            raise ValueError(f"QRSTYLE_ERROR_LEVEL: {exc}") from None
        return cls(
            log_level=env.get("QRSTYLE_LOG_LEVEL", "INFO").upper(),
            log_file=env.get("QRSTYLE_LOG_FILE") or None,
            log_json=_env_bool(env, "QRSTYLE_LOG_JSON", False),
            size=_env_int(env, "QRSTYLE_SIZE", 300, minimum=21),
            margin=_env_int(env, "QRSTYLE_MARGIN", 4, minimum=0),
            error_level=error_level,
            pitch_strategy=env.get("QRSTYLE_PITCH_STRATEGY", "period").strip().lower(),
        )
