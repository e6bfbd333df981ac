# Core - Configuration
#
# KAYRING_* environment variables, optionally seeded from a .env file.
# Real environment variables always win over .env values, and explicit
# command-line flags win over both.

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

from ..keystore.encryption import DEFAULT_DERIVATION_ROUNDS, validate_rounds
from ..keystore.exceptions import InvalidConfiguration

ENV_DIR = "KAYRING_DIR"
ENV_PASSWORD = "KAYRING_PASSWORD"
ENV_VALUE = "KAYRING_VALUE"
ENV_DERIVATION_ROUNDS = "KAYRING_DERIVATION_ROUNDS"
ENV_LOG_DIR = "KAYRING_LOG_DIR"
ENV_LOG_LEVEL = "KAYRING_LOG_LEVEL"

DEFAULT_LOG_LEVEL = "WARNING"
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class Settings:
    """Resolved configuration for one CLI invocation."""
    root_dir: Optional[str] = None
    password: Optional[str] = None
    value: Optional[str] = None
    derivation_rounds_raw: Optional[str] = None
    log_dir: Optional[Path] = None
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        dotenv_path: Optional[str] = None,
    ) -> "Settings":
        """Build settings from the environment.

        When ``environ`` is None the process environment is used, after
        merging a .env file (``dotenv_path`` or the nearest one found).

        Raises:
            InvalidConfiguration: unparsable log level
        """
        if environ is None:
            load_dotenv(dotenv_path=dotenv_path, override=False)
            environ = os.environ

        log_level = (environ.get(ENV_LOG_LEVEL) or DEFAULT_LOG_LEVEL).upper()
        if log_level not in _LOG_LEVELS:
            raise InvalidConfiguration(
                f"{ENV_LOG_LEVEL} must be one of {', '.join(_LOG_LEVELS)}, got {log_level!r}"
            )

        log_dir = environ.get(ENV_LOG_DIR)

        return cls(
            root_dir=environ.get(ENV_DIR) or None,
            password=environ.get(ENV_PASSWORD),
            value=environ.get(ENV_VALUE),
            derivation_rounds_raw=environ.get(ENV_DERIVATION_ROUNDS),
            log_dir=Path(log_dir) if log_dir else None,
            log_level=log_level,
        )

    @property
    def derivation_rounds(self) -> int:
        """Round count from the environment, or the default.

        Parsed on access so a command that takes the value from a flag, or
        needs no rounds at all, is unaffected by a bad environment value.

        Raises:
            InvalidConfiguration: not a positive 32-bit integer
        """
        return _parse_rounds(self.derivation_rounds_raw)


def _parse_rounds(raw: Optional[str]) -> int:
    if raw is None or raw.strip() == "":
        return DEFAULT_DERIVATION_ROUNDS
    try:
        rounds = int(raw.strip())
    except ValueError:
        raise InvalidConfiguration(
            f"{ENV_DERIVATION_ROUNDS} must be an integer, got {raw!r}"
        ) from None
    return validate_rounds(rounds)
