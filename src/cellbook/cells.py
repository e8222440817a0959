"""Notebook cells and their execution status."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from uuid import uuid4

from cellbook.exceptions import CellStateError, ReviewRequiredError
from cellbook.sandbox.pipeline import ExecutionOutcome

# Output text that marks a cell as worth offering a fix for
ERROR_MARKERS = ("error", "exception")


class CellStatus(str, Enum):
    """Execution status of a cell."""

    IDLE = "idle"
    EXECUTING = "executing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


# Any terminal state may go back to executing; nothing cancels a run.
TRANSITIONS: dict[CellStatus, frozenset[CellStatus]] = {
    CellStatus.IDLE: frozenset({CellStatus.EXECUTING}),
    CellStatus.EXECUTING: frozenset({CellStatus.SUCCEEDED, CellStatus.FAILED}),
    CellStatus.SUCCEEDED: frozenset({CellStatus.EXECUTING}),
    CellStatus.FAILED: frozenset({CellStatus.EXECUTING}),
}


@dataclass
class Cell:
    """A code cell.

    Code written by the assistant starts unconfirmed and must be
    confirmed before it can run.
    """

    code: str = ""
    id: str = field(default_factory=lambda: f"cell-{uuid4().hex[:8]}")
    ai_generated: bool = False
    confirmed: bool = False
    status: CellStatus = CellStatus.IDLE
    output: str | None = None
    results: list[dict[str, Any]] | None = None

    @property
    def needs_review(self) -> bool:
        return self.ai_generated and not self.confirmed

    @property
    def is_empty(self) -> bool:
        return not self.code.strip()

    @property
    def has_error(self) -> bool:
        """Failed, or produced output that looks like a traceback."""
        if self.status == CellStatus.FAILED:
            return True
        text = (self.output or "").lower()
        return any(marker in text for marker in ERROR_MARKERS)

    def set_code(self, code: str, ai_generated: bool = False) -> None:
        """Replace the code; assistant-written code must be reviewed again."""
        self.code = code
        self.ai_generated = ai_generated
        self.confirmed = False

    def confirm(self) -> None:
        """Accept the AI-authored code for execution."""
        self.confirmed = True

    def _transition(self, status: CellStatus) -> None:
        if status not in TRANSITIONS[self.status]:
            raise CellStateError(
                f"Cell {self.id} cannot go from {self.status.value} to {status.value}"
            )
        self.status = status

    def start(self) -> None:
        """Enter executing.

        Raises:
            ReviewRequiredError: If AI-authored code has not been confirmed
            CellStateError: If the cell is already executing
        """
        if self.needs_review:
            raise ReviewRequiredError(f"Cell {self.id} contains unreviewed AI-generated code")
        self._transition(CellStatus.EXECUTING)

    def finish(self, outcome: ExecutionOutcome) -> None:
        """Record an outcome and enter succeeded or failed.

        A failed run shows its error message as the cell output.
        """
        self._transition(CellStatus.SUCCEEDED if outcome.success else CellStatus.FAILED)
        self.output = outcome.output if outcome.success else outcome.error
        self.results = (
            [result.to_dict() for result in outcome.results]
            if outcome.results is not None
            else None
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "code": self.code,
            "status": self.status.value,
            "ai_generated": self.ai_generated,
            "needs_review": self.needs_review,
            "has_error": self.has_error,
        }
        if self.output is not None:
            data["output"] = self.output
        if self.results is not None:
            data["results"] = self.results
        return data
