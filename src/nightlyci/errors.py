# errors.py
from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(eq=False)
class NightlyCIError(Exception):
    """
    Structured generator error with enough context for:
      - clean CLI output
      - pointing at the offending entry of a targets file
    """
    kind: str
    message: str
    details: dict = field(default_factory=dict)

    def __str__(self) -> str:
        lines = [f"{self.kind}: {self.message}"]
        for k, v in self.details.items():
            lines.append(f"{k}={v}")
        return "\n".join(lines)


class ConfigError(NightlyCIError):
    """The targets file or settings are missing, malformed or inconsistent."""


class RenderError(NightlyCIError):
    """The template could not be rendered into a valid workflow."""
