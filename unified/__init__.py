"""Grade-sheet exchange engine for the Unified dashboard."""

from .config_schema import DEFAULT_CONFIG, get_default_config, load_config, merge_config, validate_config
from .dates import normalize_date_header, sort_date_keys
from .validators import parse_grade, validate_grade_sheet, validate_roster
from .excel_generator import build_grade_rows, export_filename, generate_workbook, read_worksheet
from .importer import ImportReport, apply_submissions, import_grade_sheet
from .cell_editor import GradeCellEditor
from .endpoint_tracker import EndpointTracker
from .api_client import UnifiedClient
from .models import GradeSheetContext, GradeSubmission, GradeSystem, Role, StudentAssessment
from .workspace import GradesWorkspace

__all__ = [
    "DEFAULT_CONFIG",
    "get_default_config",
    "load_config",
    "merge_config",
    "validate_config",
    "normalize_date_header",
    "sort_date_keys",
    "parse_grade",
    "validate_grade_sheet",
    "validate_roster",
    "build_grade_rows",
    "export_filename",
    "generate_workbook",
    "read_worksheet",
    "ImportReport",
    "apply_submissions",
    "import_grade_sheet",
    "GradeCellEditor",
    "EndpointTracker",
    "UnifiedClient",
    "GradeSheetContext",
    "GradeSubmission",
    "GradeSystem",
    "Role",
    "StudentAssessment",
    "GradesWorkspace",
]
