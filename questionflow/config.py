"""
Runtime settings for questionflow sessions.

Settings come from dataclass defaults, optionally overridden by environment
variables (and a local ``.env`` file) via ``FlowSettings.from_env()``:

    QUESTIONFLOW_AUTOSAVE_DELAY      seconds before a draft auto-save (2.0)
    QUESTIONFLOW_CONFIDENCE_SCOPE    "all" or "visible" ("all")
    QUESTIONFLOW_LOG_LEVEL           logging level name ("INFO")
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .errors import QuestionFlowError
from .logic.scoring import ConfidenceScope

DEFAULT_AUTOSAVE_DELAY = 2.0
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def load_env_file(path: str | Path) -> None:
    """Load KEY=VALUE lines into os.environ without overriding existing values."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for line in env_path.read_text().splitlines():
        line = line.strip()
        if line and not line.startswith("#") and "=" in line:
            key, _, value = line.partition("=")
            os.environ.setdefault(key.strip(), value.strip())


@dataclass
class FlowSettings:
    """Configuration for the flow controller."""
    # Debounce between the last answer change and the draft save
    autosave_delay: float = DEFAULT_AUTOSAVE_DELAY

    # Which answers count toward confidence
    confidence_scope: ConfidenceScope = ConfidenceScope.ALL

    log_level: str = "INFO"

    def __post_init__(self):
        if self.autosave_delay < 0:
            raise QuestionFlowError(f"autosave_delay must be >= 0, got {self.autosave_delay}")
        try:
            self.confidence_scope = ConfidenceScope(self.confidence_scope)
        except ValueError as exc:
            raise QuestionFlowError(
                f"confidence_scope must be 'all' or 'visible', got {self.confidence_scope!r}"
            ) from exc

    @classmethod
    def from_env(cls, env_file: Optional[str | Path] = None) -> "FlowSettings":
        if env_file:
            load_env_file(env_file)

        delay = os.environ.get("QUESTIONFLOW_AUTOSAVE_DELAY")
        try:
            autosave_delay = float(delay) if delay else DEFAULT_AUTOSAVE_DELAY
        except ValueError as exc:
            raise QuestionFlowError(f"QUESTIONFLOW_AUTOSAVE_DELAY is not a number: {delay!r}") from exc

        return cls(
            autosave_delay=autosave_delay,
            confidence_scope=os.environ.get("QUESTIONFLOW_CONFIDENCE_SCOPE", ConfidenceScope.ALL.value),
            log_level=os.environ.get("QUESTIONFLOW_LOG_LEVEL", "INFO").upper(),
        )


def configure_logging(level: str = "INFO") -> None:
    """Root logging setup for the CLI and web entry points."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )
