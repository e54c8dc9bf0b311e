from __future__ import annotations

import logging
import math
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

load_dotenv()


DEFAULT_LARGE_WORKFLOW_THRESHOLD = 10
DEFAULT_AVG_SECONDS_PER_AGENT = 30.0
DEFAULT_PARALLEL_FACTOR = 0.6
DEFAULT_TEMPLATES_DIR = Path.home() / ".agency_builder" / "templates"


class BuilderSettings(BaseModel):
    """Tunables for validation, estimation and template storage."""

    large_workflow_threshold: int = Field(default=DEFAULT_LARGE_WORKFLOW_THRESHOLD, ge=0)
    avg_seconds_per_agent: float = Field(default=DEFAULT_AVG_SECONDS_PER_AGENT, ge=0)
    parallel_factor: float = Field(default=DEFAULT_PARALLEL_FACTOR, ge=0)
    templates_dir: Path = DEFAULT_TEMPLATES_DIR
    strict_principals: bool = True

    @classmethod
    def from_env(cls) -> "BuilderSettings":
        """
        Build settings from process env.

        Env vars:
        - AGENCY_BUILDER_LARGE_WORKFLOW_THRESHOLD (default: 10)
        - AGENCY_BUILDER_AVG_SECONDS_PER_AGENT (default: 30)
        - AGENCY_BUILDER_PARALLEL_FACTOR (default: 0.6)
        - AGENCY_BUILDER_TEMPLATES_DIR (default: ~/.agency_builder/templates)
        - AGENCY_BUILDER_STRICT_PRINCIPALS (default: true)
        """
        templates_dir = _read_str_env("AGENCY_BUILDER_TEMPLATES_DIR")
        return cls(
            large_workflow_threshold=_read_int_env(
                "AGENCY_BUILDER_LARGE_WORKFLOW_THRESHOLD",
                default=DEFAULT_LARGE_WORKFLOW_THRESHOLD,
            ),
            avg_seconds_per_agent=_read_float_env(
                "AGENCY_BUILDER_AVG_SECONDS_PER_AGENT",
                default=DEFAULT_AVG_SECONDS_PER_AGENT,
            ),
            parallel_factor=_read_float_env(
                "AGENCY_BUILDER_PARALLEL_FACTOR",
                default=DEFAULT_PARALLEL_FACTOR,
            ),
            templates_dir=Path(templates_dir).expanduser() if templates_dir else DEFAULT_TEMPLATES_DIR,
            strict_principals=_read_bool_env("AGENCY_BUILDER_STRICT_PRINCIPALS", default=True),
        )


def get_settings() -> BuilderSettings:
    return BuilderSettings.from_env()


def _read_str_env(name: str) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None:
        return None
    value = str(raw).strip()
    return value or None


def _read_bool_env(name: str, *, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return str(raw).strip().lower() in {"1", "true", "yes", "on"}


def _read_int_env(name: str, *, default: int, minimum: int = 0) -> int:
    raw = _read_str_env(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer value %r for %s", raw, name)
        return default
    if value < minimum:
        logger.warning("Ignoring out-of-range value %r for %s (minimum %s)", raw, name, minimum)
        return default
    return value


def _read_float_env(name: str, *, default: float, minimum: float = 0.0) -> float:
    raw = _read_str_env(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric value %r for %s", raw, name)
        return default
    if not math.isfinite(value) or value < minimum:
        logger.warning("Ignoring out-of-range value %r for %s (minimum %s)", raw, name, minimum)
        return default
    return value
