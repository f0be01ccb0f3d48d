"""Excel workbook generation and reading for grade-sheet exchange."""

from typing import Any
import io
import os
import re
import zipfile

from openpyxl import Workbook, load_workbook
from openpyxl.styles import Font, Alignment, PatternFill, Border, Side
from openpyxl.utils import get_column_letter
from openpyxl.utils.exceptions import InvalidFileException

from .app_logger import get_logger
from .dates import DATE_KEY_PLACEHOLDER, sort_date_keys
from .errors import TemplateMismatchError
from .models import GradeSheetContext, Role, StudentAssessment

logger = get_logger("excel")

ILLEGAL_FILENAME_CHARS = re.compile(r'[\\/:*?"<>|]')


def col_letter(col_num: int) -> str:
    """Convert 1-based column number to Excel column letter."""
    return get_column_letter(col_num)


def collect_dates(assessments: list[StudentAssessment], discipline: str) -> list[str]:
    """Return every DateKey graded in ``discipline``, in calendar order."""
    dates = set()
    for student in assessments:
        dates.update(student.grades_for(discipline).keys())
    return sort_date_keys(dates)


def build_grade_rows(
    context: GradeSheetContext,
    assessments: list[StudentAssessment] | None = None
) -> list[list[Any]]:
    """
    Build the rectangular grid written to an exported grade sheet.

    Args:
        context: Role, group, discipline and grade system of the export
        assessments: Roster to export; defaults to ``context.roster``

    Returns:
        Four metadata rows, the header row and one row per student.
    """
    if assessments is None:
        assessments = context.roster

    dates = collect_dates(assessments, context.discipline) or [DATE_KEY_PLACEHOLDER]

    rows: list[list[Any]] = [
        ["Template", context.template_name],
        ["Group", context.group_code],
        ["Discipline", context.discipline],
        ["Grade System", context.grade_system.name],
        ["EDBO ID", "Student", *dates],
    ]

    for student in assessments:
        grades = student.grades_for(context.discipline)
        rows.append([
            student.edbo_id,
            student.student.full_name,
            *(grades.get(date, "") for date in dates),
        ])

    return rows


def safe_filename_part(text: str) -> str:
    """Replace characters that are illegal in file names with ``-``."""
    return ILLEGAL_FILENAME_CHARS.sub("-", text)


def export_filename(role: Role | str, group_code: str, discipline: str) -> str:
    role = Role.parse(role)
    return f"{role.label}_Grades_{group_code}_{safe_filename_part(discipline)}.xlsx"


def generate_workbook(rows: list[list[Any]], sheet_name: str = "Grades") -> Workbook:
    """
    Generate the Excel workbook for a grade sheet.

    Args:
        rows: Grid produced by ``build_grade_rows``
        sheet_name: Title of the single worksheet

    Returns:
        openpyxl Workbook object
    """
    wb = Workbook()
    ws = wb.active
    ws.title = sheet_name

    # Styles
    label_font = Font(bold=True)
    header_font = Font(bold=True, color="FFFFFF")
    header_fill = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
    meta_fill = PatternFill(start_color="D9E1F2", end_color="D9E1F2", fill_type="solid")
    center_align = Alignment(horizontal="center", vertical="center")
    thin_border = Border(
        left=Side(style="thin"),
        right=Side(style="thin"),
        top=Side(style="thin"),
        bottom=Side(style="thin")
    )

    max_col = 2
    for row_idx, values in enumerate(rows, 1):
        max_col = max(max_col, len(values))
        for col_idx, value in enumerate(values, 1):
            cell = ws.cell(row=row_idx, column=col_idx, value=None if value == "" else value)

            if row_idx <= 4:
                if col_idx == 1:
                    cell.font = label_font
                    cell.fill = meta_fill
            elif row_idx == 5:
                cell.font = header_font
                cell.fill = header_fill
                cell.alignment = center_align
                cell.border = thin_border
            else:
                cell.border = thin_border
                if col_idx != 2:
                    cell.alignment = center_align

    # Adjust column widths
    ws.column_dimensions[col_letter(1)].width = 14
    ws.column_dimensions[col_letter(2)].width = 36
    for c in range(3, max_col + 1):
        ws.column_dimensions[col_letter(c)].width = 12

    ws.freeze_panes = "C6"

    return wb


def workbook_to_bytes(wb: Workbook) -> bytes:
    """Serialize a workbook to ``.xlsx`` bytes for download."""
    buffer = io.BytesIO()
    wb.save(buffer)
    buffer.seek(0)
    return buffer.getvalue()


def read_worksheet(source) -> list[list[Any]]:
    """
    Read the first worksheet of an uploaded workbook as raw rows.

    Blank cells become ``""``, fully blank rows are dropped and trailing
    blank cells are trimmed.

    Args:
        source: Path or binary file-like object
    """
    if isinstance(source, os.PathLike):
        source = os.fspath(source)

    try:
        wb = load_workbook(source, read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as e:
        logger.warning("Could not open uploaded workbook: %s", e)
        raise TemplateMismatchError("Unsupported spreadsheet file; upload an .xlsx file") from e

    try:
        if not wb.worksheets:
            return []
        ws = wb.worksheets[0]

        rows = []
        for values in ws.iter_rows(values_only=True):
            row = ["" if value is None else value for value in values]
            while row and row[-1] == "":
                row.pop()
            if row:
                rows.append(row)
        return rows
    finally:
        wb.close()
