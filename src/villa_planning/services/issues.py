from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

Severity = Literal["info", "warning", "error"]


@dataclass
class PlanningWarning:
    """Non-blocking issue attached to an otherwise successful operation."""

    type: str
    message: str
    severity: Severity = "warning"
    affectation_id: int | None = None
    user_id: int | None = None

    def as_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"type": self.type, "message": self.message, "severity": self.severity}
        if self.affectation_id is not None:
            payload["affectationId"] = self.affectation_id
        if self.user_id is not None:
            payload["userId"] = self.user_id
        return payload
