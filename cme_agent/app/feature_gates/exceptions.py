"""Errors raised when an entitlement gate denies an action."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from fastapi import HTTPException, status

from .prompts import UpgradePrompt


@dataclass
class FeatureGateError(Exception):
    """A denied entitlement check, carrying the upgrade prompt for the caller."""

    code: str
    message: str
    prompt: Optional[UpgradePrompt] = None
    status_code: int = status.HTTP_403_FORBIDDEN
    detail: Optional[Mapping[str, Any]] = None

    def __post_init__(self) -> None:
        super().__init__(self.message)

    @classmethod
    def from_prompt(
        cls,
        code: str,
        prompt: UpgradePrompt,
        *,
        detail: Optional[Mapping[str, Any]] = None,
    ) -> "FeatureGateError":
        return cls(code=code, message=prompt.message, prompt=prompt, detail=detail)

    @property
    def payload(self) -> Mapping[str, Any]:
        """Serialized representation suitable for JSON responses."""

        body: Dict[str, Any] = {"error": self.code, "message": self.message}
        if self.detail:
            body.update(self.detail)
        if self.prompt is not None:
            body["upgrade"] = self.prompt.to_dict()
        return body

    def to_http_exception(self) -> HTTPException:
        return HTTPException(status_code=self.status_code, detail=dict(self.payload))
