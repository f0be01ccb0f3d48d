"""Validation utilities for grades, roster IDs and uploaded grade sheets."""

from typing import Any
import math

from .dates import is_date_key, normalize_date_header
from .errors import (
    DateFormatError,
    DisciplineMismatchError,
    GradeSystemMismatchError,
    GroupMismatchError,
    HeaderMismatchError,
    InvalidGradeError,
    MissingDateColumnsError,
    TemplateMismatchError,
    UnknownRosterIdError,
)
from .models import GradeSheetContext, GradeSubmission, StudentAssessment

METADATA_ROWS = 4
HEADER_ROW = 4
FIRST_DATA_ROW = 5
FIRST_DATE_COLUMN = 2


def _at(row: list[Any] | None, index: int) -> Any:
    if not row or index >= len(row):
        return None
    return row[index]


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and not value.strip()


def cell_text(value: Any) -> str:
    """Render a sheet cell as text, writing integral numbers without a trailing ``.0``."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _to_number(value: Any) -> float | int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return float(text)
        except ValueError:
            return None
    return None


def parse_grade(value: Any, max_grade: int) -> int | None:
    """
    Parse a grade value.

    Returns:
        The integer grade when it lies in ``[1, max_grade]``, else None.
    """
    number = _to_number(value)
    if number is None:
        return None
    if isinstance(number, float):
        if not number.is_integer():
            return None
        number = int(number)
    if number < 1 or number > max_grade:
        return None
    return number


def accepts_keystroke(text: str, max_grade: int) -> bool:
    """Whether a keystroke leaving ``text`` in a grade cell should be kept.

    Empty text is allowed (it clears the cell). Non-numeric or out-of-range
    text is rejected so the last valid value persists.
    """
    if text == "":
        return True
    try:
        number = float(text)
    except ValueError:
        return False
    if not math.isfinite(number):
        return False
    return 1 <= number <= max_grade


def parse_roster_id(value: Any) -> int | float | None:
    """Parse a roster ID cell; blank, zero and non-numeric cells yield None."""
    number = _to_number(value)
    if number is None or (isinstance(number, float) and math.isnan(number)):
        return None
    if number == 0:
        return None
    if isinstance(number, float) and number.is_integer():
        return int(number)
    return number


def _check_metadata_row(row: list[Any], label: str, expected: str, error_cls, message: str):
    if _at(row, 0) != label or cell_text(_at(row, 1)) != expected:
        raise error_cls(message)


def validate_grade_sheet(
    rows: list[list[Any]],
    context: GradeSheetContext
) -> list[GradeSubmission]:
    """
    Validate an uploaded grade sheet against the current selection.

    Checks run in a fixed order and the first failure raises, so no remote
    call is ever made for a rejected file.

    Args:
        rows: Raw rows of the first worksheet
        context: Selected group, discipline, grade system and roster

    Returns:
        Submissions for every non-blank grade cell, in row then column order.
    """
    if len(rows) < FIRST_DATA_ROW:
        raise TemplateMismatchError("File does not match the template")

    template_row = rows[0]
    if _at(template_row, 0) != "Template" or _at(template_row, 1) not in context.accepted_templates:
        raise TemplateMismatchError("Wrong file template")

    _check_metadata_row(
        rows[1], "Group", context.group_code, GroupMismatchError,
        "File does not match the selected group"
    )
    _check_metadata_row(
        rows[2], "Discipline", context.discipline, DisciplineMismatchError,
        "File does not match the selected discipline"
    )
    _check_metadata_row(
        rows[3], "Grade System", context.grade_system.name, GradeSystemMismatchError,
        "Wrong grade system"
    )

    header_row = rows[HEADER_ROW]
    if _at(header_row, 0) != "EDBO ID" or _at(header_row, 1) != "Student":
        raise HeaderMismatchError("Wrong table headers")

    # Keep each date's real column index so blank header cells cannot shift grades
    date_columns = []
    for index in range(FIRST_DATE_COLUMN, len(header_row)):
        raw = header_row[index]
        if cell_text(raw).strip():
            date_columns.append((index, raw))

    if not date_columns:
        raise MissingDateColumnsError("The file has no date columns")

    normalized = []
    for index, raw in date_columns:
        date_key = normalize_date_header(raw)
        if not is_date_key(date_key):
            raise DateFormatError("Dates must use the DD-MM-YYYY format", raw)
        normalized.append((index, date_key))

    roster = context.roster_by_id()
    max_grade = context.grade_system.max_grade
    submissions = []

    for row in rows[FIRST_DATA_ROW:]:
        if not row or all(_is_blank(cell) for cell in row):
            continue

        edbo_id = parse_roster_id(_at(row, 0))
        if not edbo_id:
            continue

        if edbo_id not in roster:
            raise UnknownRosterIdError(
                f"EDBO ID {cell_text(edbo_id)} was not found in the current group", edbo_id
            )

        for index, date_key in normalized:
            value = _at(row, index)
            if _is_blank(value):
                continue

            grade = parse_grade(value, max_grade)
            if grade is None:
                raise InvalidGradeError(
                    f"Invalid grade for EDBO ID {edbo_id} ({date_key})",
                    edbo_id, date_key, value
                )

            submissions.append(GradeSubmission(
                edbo_id=edbo_id,
                subject=context.discipline,
                grade_system=context.grade_system.name,
                grade=grade,
                date=date_key,
            ))

    return submissions


def validate_roster(roster: list[StudentAssessment]) -> list[dict[str, str]]:
    """
    Validate a fetched roster and return issues.

    Returns:
        List of dicts with 'type' and 'message'.
    """
    issues = []

    seen = set()
    duplicates = []
    for student in roster:
        if student.edbo_id in seen:
            duplicates.append(str(student.edbo_id))
        seen.add(student.edbo_id)

    if duplicates:
        issues.append({
            "type": "warning",
            "message": f"Duplicate EDBO IDs in roster: {', '.join(duplicates)}"
        })

    unnamed = sum(1 for s in roster if not s.student.full_name.strip())
    if unnamed:
        issues.append({
            "type": "warning",
            "message": f"{unnamed} student(s) without a name"
        })

    return issues
