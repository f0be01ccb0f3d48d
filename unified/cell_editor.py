"""Inline grade cell editor: pending edits and the per-cell commit protocol.

Each cell moves Committed -> Editing on a keystroke, then back to Committed
when the edit is discarded or unchanged, or through Saving when a changed
grade is sent to the remote store.
"""

from dataclasses import dataclass
from typing import Any, Callable

from .app_logger import get_logger
from .models import GradeSubmission, StudentAssessment
from .validators import accepts_keystroke, parse_grade

logger = get_logger("cell_editor")

DISCARDED = "discarded"
UNCHANGED = "unchanged"
INVALID = "invalid"
BUSY = "busy"
SAVED = "saved"
FAILED = "failed"
REJECTED = "rejected"


@dataclass
class CommitResult:
    key: str
    status: str
    message: str | None = None

    @property
    def called_remote(self) -> bool:
        return self.status in (SAVED, FAILED)


def cell_key(edbo_id: int, date: str) -> str:
    return f"{edbo_id}-{date}"


class GradeCellEditor:
    """Tracks pending edits for one grade grid and commits them one cell at a time."""

    def __init__(
        self,
        discipline: str,
        grade_system: str,
        max_grade: int,
        submit: Callable[[GradeSubmission], Any],
        refetch: Callable[[], Any],
    ):
        self.discipline = discipline
        self.grade_system = grade_system
        self.max_grade = max_grade
        self.submit = submit
        self.refetch = refetch
        self.pending: dict[str, str] = {}
        self.saving: set[str] = set()

    def is_saving(self, key: str) -> bool:
        return key in self.saving

    def display_value(self, student: StudentAssessment, date: str) -> str:
        key = cell_key(student.edbo_id, date)
        if key in self.pending:
            return self.pending[key]
        grade = student.grade_on(self.discipline, date)
        return str(grade) if grade else ""

    def type_value(self, key: str, text: str) -> bool:
        """Apply a keystroke. Returns False when the keystroke is rejected."""
        if self.is_saving(key):
            return False
        if not text:
            self.pending[key] = ""
            return True
        if not accepts_keystroke(text, self.max_grade):
            return False
        self.pending[key] = text
        return True

    def cancel(self, key: str):
        self.pending.pop(key, None)

    def commit(self, student: StudentAssessment, date: str, raw_value: str | None = None) -> CommitResult:
        """
        Commit a cell on blur or Enter.

        Args:
            student: Roster entry the cell belongs to
            date: DateKey of the cell's column
            raw_value: Text in the cell; defaults to the pending edit
        """
        key = cell_key(student.edbo_id, date)

        if self.is_saving(key):
            return CommitResult(key, BUSY)

        if raw_value is None:
            raw_value = self.pending.get(key, "")
        trimmed = str(raw_value).strip()

        # No delete endpoint exists, so clearing a cell only reverts the display
        if not trimmed:
            self.cancel(key)
            return CommitResult(key, DISCARDED)

        grade = parse_grade(trimmed, self.max_grade)
        if grade is None:
            return CommitResult(key, INVALID, f"Grade must be between 1 and {self.max_grade}")

        if grade == student.grade_on(self.discipline, date):
            self.cancel(key)
            return CommitResult(key, UNCHANGED)

        submission = GradeSubmission(
            edbo_id=student.edbo_id,
            subject=self.discipline,
            grade_system=self.grade_system,
            grade=grade,
            date=date,
        )

        self.saving.add(key)
        try:
            self.submit(submission)
        except Exception as e:
            logger.error("Grade update failed for %s: %s", key, e)
            self.cancel(key)
            return CommitResult(key, FAILED, str(e) or "Could not save the grade")
        finally:
            self.saving.discard(key)

        self.cancel(key)
        self.refetch()
        return CommitResult(key, SAVED, "Grade saved")
