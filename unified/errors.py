"""Exception hierarchy for the grade-sheet exchange engine and API client."""

from typing import Any


class UnifiedError(Exception):
    """Base class for every error raised by this package."""


# --- Grade sheet validation ---

class GradeSheetError(UnifiedError):
    """An uploaded grade sheet was rejected before any remote call."""


class TemplateMismatchError(GradeSheetError):
    """Wrong file type, shape, or template literal."""


class GroupMismatchError(GradeSheetError):
    pass


class DisciplineMismatchError(GradeSheetError):
    pass


class GradeSystemMismatchError(GradeSheetError):
    pass


class HeaderMismatchError(GradeSheetError):
    pass


class MissingDateColumnsError(GradeSheetError):
    pass


class DateFormatError(GradeSheetError):
    def __init__(self, message: str, value: Any = None):
        super().__init__(message)
        self.value = value


class UnknownRosterIdError(GradeSheetError):
    """A roster ID in the file is not part of the current group."""

    def __init__(self, message: str, edbo_id: Any):
        super().__init__(message)
        self.edbo_id = edbo_id


class InvalidGradeError(GradeSheetError):
    """A grade cell is not an integer inside the grade system's range."""

    def __init__(self, message: str, edbo_id: int, date: str, value: Any):
        super().__init__(message)
        self.edbo_id = edbo_id
        self.date = date
        self.value = value


# --- Import application ---

class ImportAbortedError(UnifiedError):
    """The sequential submission loop stopped at a remote failure.

    ``report`` lists which submissions were applied before the failure.
    """

    def __init__(self, message: str, report):
        super().__init__(message)
        self.report = report


# --- Remote API ---

class ApiError(UnifiedError):
    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class SessionExpiredError(ApiError):
    pass


class ApiConnectionError(ApiError):
    pass


# --- Domain lookups ---

class UnknownRoleError(UnifiedError, ValueError):
    pass


class UnknownGradeSystemError(UnifiedError, ValueError):
    pass


class RoleNotAllowedError(UnifiedError):
    """The signed-in role cannot use the requested page or operation."""
