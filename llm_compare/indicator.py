from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from llm_compare.health import HealthState, HealthStatus

WARNING_ICON = "⚠️"
WARNING_TEXT = "Backend server unreachable"


@dataclass
class HealthIndicator:
    """
    Display state for the health badge. Shown only while the backend is
    known to be unhealthy; the warning text appears while hovered/focused.
    """
    expanded: bool = False

    def visible(self, state: HealthState) -> bool:
        return state.status is HealthStatus.UNHEALTHY

    def hover_enter(self) -> None:
        self.expanded = True

    def hover_exit(self) -> None:
        self.expanded = False

    def label(self, state: HealthState) -> Optional[str]:
        if not self.visible(state):
            return None
        if self.expanded:
            return f"{WARNING_ICON} {WARNING_TEXT}"
        return WARNING_ICON
