"""Replays a validated grade sheet as sequential remote grade updates."""

from dataclasses import dataclass, field
from typing import Any, Callable

from .app_logger import get_logger
from .errors import ImportAbortedError, UnifiedError
from .models import GradeSheetContext, GradeSubmission
from .validators import validate_grade_sheet

logger = get_logger("importer")

APPLIED = "applied"
FAILED = "failed"
NOT_ATTEMPTED = "not_attempted"


@dataclass
class SubmissionResult:
    submission: GradeSubmission
    status: str
    error: str | None = None


@dataclass
class ImportReport:
    results: list[SubmissionResult] = field(default_factory=list)
    refetch_error: str | None = None

    def _with_status(self, status: str) -> list[GradeSubmission]:
        return [r.submission for r in self.results if r.status == status]

    @property
    def applied(self) -> list[GradeSubmission]:
        return self._with_status(APPLIED)

    @property
    def failed(self) -> list[GradeSubmission]:
        return self._with_status(FAILED)

    @property
    def not_attempted(self) -> list[GradeSubmission]:
        return self._with_status(NOT_ATTEMPTED)

    @property
    def ok(self) -> bool:
        return all(r.status == APPLIED for r in self.results)

    def summary(self) -> str:
        total = len(self.results)
        if self.ok:
            return f"Imported {total} grade(s)"
        return (
            f"Imported {len(self.applied)} of {total} grade(s); "
            f"{len(self.failed)} failed, {len(self.not_attempted)} not attempted"
        )


def apply_submissions(
    submissions: list[GradeSubmission],
    submit: Callable[[GradeSubmission], Any]
) -> ImportReport:
    """
    Send submissions one at a time, stopping at the first failure.

    There is no rollback: submissions applied before a failure stay applied.
    The report records the status of every submission.
    """
    report = ImportReport()
    failed = False

    for submission in submissions:
        if failed:
            report.results.append(SubmissionResult(submission, NOT_ATTEMPTED))
            continue
        try:
            submit(submission)
        except Exception as e:
            logger.error(
                "Grade update failed for EDBO ID %s on %s: %s",
                submission.edbo_id, submission.date, e
            )
            report.results.append(SubmissionResult(submission, FAILED, str(e)))
            failed = True
            continue
        report.results.append(SubmissionResult(submission, APPLIED))

    return report


def import_grade_sheet(
    rows: list[list[Any]],
    context: GradeSheetContext,
    submit: Callable[[GradeSubmission], Any],
    refetch: Callable[[], Any]
) -> ImportReport:
    """
    Validate an uploaded sheet and apply it to the remote store.

    Validation errors propagate before any remote call. When anything was
    submitted, ``refetch`` is called afterwards so the view reflects whatever
    landed, even when the loop aborts. A failed refetch is logged and kept
    on the report as ``refetch_error``.

    Raises:
        GradeSheetError: the sheet was rejected
        ImportAbortedError: a remote call failed; carries the report
    """
    submissions = validate_grade_sheet(rows, context)
    logger.info(
        "Importing %d grade(s) for group %s, discipline %s",
        len(submissions), context.group_code, context.discipline
    )

    report = apply_submissions(submissions, submit)

    if submissions:
        try:
            refetch()
        except UnifiedError as e:
            logger.error("Roster refetch after import failed: %s", e)
            report.refetch_error = str(e)

    if not report.ok:
        raise ImportAbortedError(f"Import failed: {report.summary()}", report)

    return report
