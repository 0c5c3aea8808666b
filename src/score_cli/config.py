"""Configuration loading from environment variables and CLI flags."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from score_cli.settings import DEFAULT_PROFILE, PROFILES

ENV_KEYS = {
    "profile": "SCORE_CLI_PROFILE",
    "output_dir": "SCORE_CLI_OUTPUT_DIR",
    "debounce_ms": "SCORE_CLI_DEBOUNCE_MS",
    "workers": "SCORE_CLI_WORKERS",
}

DEFAULTS = {
    "profile": DEFAULT_PROFILE,
    "output_dir": Path("."),
    "debounce_ms": 300,
    "workers": min(4, os.cpu_count() or 1),
}


def _int_from_env(key: str, default: int, minimum: int) -> int:
    raw = os.environ.get(ENV_KEYS[key], "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise RuntimeError(f"{ENV_KEYS[key]} must be an integer, got {raw!r}.") from None
    if value < minimum:
        raise RuntimeError(f"{ENV_KEYS[key]} must be at least {minimum}, got {value}.")
    return value


@dataclass
class Config:
    profile: str
    output_dir: Path
    debounce_ms: int
    workers: int

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000

    @classmethod
    def from_env(
        cls,
        profile_override: Optional[str] = None,
        output_dir_override: Optional[Path] = None,
    ) -> "Config":
        profile = profile_override or os.environ.get(ENV_KEYS["profile"]) or DEFAULTS["profile"]
        if profile not in PROFILES:
            raise RuntimeError(
                f"Unknown profile {profile!r}. "
                f"Set {ENV_KEYS['profile']} to one of: {', '.join(PROFILES)}."
            )
        output_dir = (
            output_dir_override
            or Path(os.environ.get(ENV_KEYS["output_dir"]) or DEFAULTS["output_dir"])
        )
        return cls(
            profile=profile,
            output_dir=output_dir,
            debounce_ms=_int_from_env("debounce_ms", DEFAULTS["debounce_ms"], minimum=0),
            workers=_int_from_env("workers", DEFAULTS["workers"], minimum=1),
        )
