"""
studio.errors
Fatal error type for the studio orchestrator.

StudioError is only raised for conditions no retry can fix: the page can no
longer be evaluated, the app never became ready, or the caller violated a
precondition. Expected outcomes such as "element not found" or "generation
timed out" are returned as values instead.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class StudioError(Exception):
    """Fatal orchestrator error.

    code: error code (EVALUATE_FAILED / PAGE_NOT_READY / MISSING_URL / ...)
    stage: where it happened (evaluate / reload / ready / batch / config / ...)
    message: human readable, actionable message
    original: optional underlying exception
    """

    code: str
    stage: str
    message: str
    original: Optional[Exception] = None

    def __str__(self) -> str:  # pragma: no cover
        base = f"[{self.code}@{self.stage}] {self.message}"
        if self.original is not None:
            base += f" ({type(self.original).__name__}: {self.original})"
        return base
