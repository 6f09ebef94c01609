"""
MockAPI Expression Results

Value-or-warning result type for template expressions and conditions.
A degraded result still carries a usable value (the fallback), so callers
can keep serving the response while reporting the problem.
"""

from typing import Any, Optional
from dataclasses import dataclass


@dataclass(frozen=True)
class ExpressionResult:
    """Outcome of evaluating one placeholder or condition."""

    value: Any
    warning: Optional[str] = None

    @property
    def degraded(self) -> bool:
        """True when evaluation failed and `value` is a fallback."""
        return self.warning is not None

    @classmethod
    def ok(cls, value: Any) -> 'ExpressionResult':
        return cls(value=value)

    @classmethod
    def failed(cls, fallback: Any, warning: str) -> 'ExpressionResult':
        return cls(value=fallback, warning=warning)
