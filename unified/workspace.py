"""Page controller shared by the admin and teacher grade pages."""

from typing import Any

import pandas as pd

from .app_logger import get_logger
from .api_client import UnifiedClient
from .cell_editor import REJECTED, CommitResult, GradeCellEditor, cell_key
from .errors import RoleNotAllowedError, UnifiedError
from .excel_generator import (
    build_grade_rows,
    collect_dates,
    export_filename,
    generate_workbook,
    read_worksheet,
    workbook_to_bytes,
)
from .importer import ImportReport, import_grade_sheet
from .models import GradeSheetContext, GradeSystem, GroupDetail, Role, StudentAssessment

logger = get_logger("workspace")

ID_COLUMN = "EDBO ID"
NAME_COLUMN = "Student"
AVERAGE_COLUMN = "Average"


class GradesWorkspace:
    """Holds the group/discipline selection and roster for one grades page.

    The roster is never patched locally: every successful write triggers a
    full refetch from the API.
    """

    def __init__(self, client: UnifiedClient, role: Role | str, config: dict[str, Any]):
        self.client = client
        self.role = Role.parse(role)
        if not self.role.can_exchange_grades:
            raise RoleNotAllowedError(f"{self.role.label} accounts cannot manage grades")
        self.config = config
        self.grade_system = GradeSystem.from_config(config)
        self.groups: list[GroupDetail] = []
        self.group_code = ""
        self.discipline = ""
        self.assessments: list[StudentAssessment] = []
        self.editor = self._new_editor()

    def _new_editor(self) -> GradeCellEditor:
        return GradeCellEditor(
            discipline=self.discipline,
            grade_system=self.grade_system.name,
            max_grade=self.grade_system.max_grade,
            submit=self.client.submit_grade,
            refetch=self.refresh,
        )

    # --- Selection ---

    def load_groups(self) -> list[GroupDetail]:
        self.groups = self.client.fetch_groups()
        return self.groups

    def find_group(self, group_code: str) -> GroupDetail | None:
        for group in self.groups:
            if group.code == group_code:
                return group
        return None

    def disciplines_for(self, group_code: str) -> list[str]:
        """Admins see every discipline of the group; teachers only their own."""
        if not group_code:
            return []
        if self.role is Role.TEACHER:
            return self.client.fetch_assigned_disciplines(group_code)
        group = self.find_group(group_code)
        return group.discipline_names() if group else []

    def select(self, group_code: str, discipline: str = ""):
        changed = (group_code, discipline) != (self.group_code, self.discipline)
        self.group_code = group_code
        self.discipline = discipline if group_code else ""
        if changed:
            self.editor = self._new_editor()
            self.refresh()

    @property
    def has_selection(self) -> bool:
        return bool(self.group_code and self.discipline)

    def refresh(self) -> list[StudentAssessment]:
        if not self.has_selection:
            self.assessments = []
            return self.assessments
        self.assessments = self.client.fetch_assessments(self.group_code, self.discipline)
        logger.info(
            "Loaded %d student(s) for %s / %s",
            len(self.assessments), self.group_code, self.discipline
        )
        return self.assessments

    def context(self) -> GradeSheetContext:
        if not self.has_selection:
            raise UnifiedError("Select a group and discipline first")
        return GradeSheetContext.for_role(
            self.role,
            self.group_code,
            self.discipline,
            self.grade_system,
            self.config["templates"],
            self.assessments,
        )

    def dates(self) -> list[str]:
        return collect_dates(self.assessments, self.discipline)

    def filter_students(self, search: str = "") -> list[StudentAssessment]:
        query = search.strip().lower()
        if not query:
            return list(self.assessments)
        return [s for s in self.assessments if query in s.student.full_name.lower()]

    # --- Exchange ---

    def export(self) -> tuple[str, bytes]:
        """Return the download filename and ``.xlsx`` bytes for the current roster."""
        context = self.context()
        wb = generate_workbook(build_grade_rows(context), self.config.get("sheet_name", "Grades"))
        filename = export_filename(self.role, self.group_code, self.discipline)
        logger.info("Exported %s", filename)
        return filename, workbook_to_bytes(wb)

    def import_file(self, source) -> ImportReport:
        context = self.context()
        rows = read_worksheet(source)
        return import_grade_sheet(rows, context, self.client.submit_grade, self._reload_after_import)

    def _reload_after_import(self):
        # Imported grades replace whatever was being typed in the grid
        self.editor.pending.clear()
        self.refresh()

    # --- Inline grid ---

    def grade_frame(self, search: str = "") -> pd.DataFrame:
        """Grid of roster x dates as shown (pending edits included)."""
        dates = self.dates()
        records = []
        for student in self.filter_students(search):
            record = {
                ID_COLUMN: student.edbo_id,
                NAME_COLUMN: student.student.short_name,
            }
            for date in dates:
                record[date] = self.editor.display_value(student, date)
            average = student.average(self.discipline)
            record[AVERAGE_COLUMN] = f"{average:.1f}" if average is not None else "—"
            records.append(record)
        return pd.DataFrame(records, columns=[ID_COLUMN, NAME_COLUMN, *dates, AVERAGE_COLUMN])

    def apply_frame_edits(self, original: pd.DataFrame, edited: pd.DataFrame) -> list[CommitResult]:
        """Commit every cell that differs between the shown and the edited grid.

        Every differing cell yields a result, so the caller knows the grid
        no longer matches ``grade_frame``. A keystroke the cell refuses comes
        back as ``REJECTED``.
        """
        roster = {s.edbo_id: s for s in self.assessments}
        date_columns = [c for c in original.columns if c not in (ID_COLUMN, NAME_COLUMN, AVERAGE_COLUMN)]
        results = []

        for idx in original.index:
            student = roster.get(int(original.at[idx, ID_COLUMN]))
            if student is None or idx not in edited.index:
                continue
            for date in date_columns:
                before = original.at[idx, date]
                after = edited.at[idx, date]
                after = "" if after is None or pd.isna(after) else str(after)
                if after == before:
                    continue
                key = cell_key(student.edbo_id, date)
                if not self.editor.type_value(key, after):
                    results.append(CommitResult(key, REJECTED))
                    continue
                results.append(self.editor.commit(student, date))

        return results
