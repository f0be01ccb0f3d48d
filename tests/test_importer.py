# tests/test_importer.py

import pytest

from unified.errors import ApiConnectionError, GroupMismatchError, ImportAbortedError, InvalidGradeError
from unified.excel_generator import build_grade_rows
from unified.importer import (
    APPLIED,
    FAILED,
    NOT_ATTEMPTED,
    apply_submissions,
    import_grade_sheet,
)
from unified.models import GradeSheetContext, GradeSubmission, Role, StudentAssessment, TWELVE_POINT


def _submissions(n):
    return [GradeSubmission(1000 + i, "Math", "12-point", 5, "01-09-2024") for i in range(n)]


def test_apply_submissions_in_order():
    sent = []
    report = apply_submissions(_submissions(3), sent.append)

    assert [s.edbo_id for s in sent] == [1000, 1001, 1002]
    assert report.ok
    assert report.summary() == "Imported 3 grade(s)"


def test_apply_stops_at_first_failure():
    sent = []

    def submit(submission):
        if submission.edbo_id == 1001:
            raise RuntimeError("boom")
        sent.append(submission)

    report = apply_submissions(_submissions(4), submit)

    assert [s.edbo_id for s in sent] == [1000]
    assert [r.status for r in report.results] == [APPLIED, FAILED, NOT_ATTEMPTED, NOT_ATTEMPTED]
    assert report.results[1].error == "boom"
    assert not report.ok
    assert report.summary() == "Imported 1 of 4 grade(s); 1 failed, 2 not attempted"


def test_import_submits_then_refetches(valid_rows, admin_context, fake_client):
    report = import_grade_sheet(
        valid_rows, admin_context, fake_client.submit_grade, lambda: fake_client.fetch_assessments("IPZ-21", "Math")
    )

    assert len(fake_client.submitted) == 2
    assert fake_client.fetch_count == 1
    assert report.ok


def test_rejected_sheet_makes_no_calls(valid_rows, admin_context, fake_client):
    valid_rows[1] = ["Group", "KN-31"]
    refetched = []

    with pytest.raises(GroupMismatchError):
        import_grade_sheet(valid_rows, admin_context, fake_client.submit_grade, lambda: refetched.append(True))

    assert fake_client.submitted == []
    assert refetched == []


def test_invalid_grade_late_in_file_blocks_all_submissions(valid_rows, admin_context, fake_client):
    valid_rows.append([1003, "Bondar Olena", 15, ""])

    with pytest.raises(InvalidGradeError):
        import_grade_sheet(valid_rows, admin_context, fake_client.submit_grade, lambda: None)

    assert fake_client.submitted == []


def test_refetch_happens_after_abort(valid_rows, admin_context, fake_client):
    fake_client.fail_on = 1
    refetched = []

    with pytest.raises(ImportAbortedError) as exc_info:
        import_grade_sheet(valid_rows, admin_context, fake_client.submit_grade, lambda: refetched.append(True))

    assert refetched == [True]
    report = exc_info.value.report
    assert [s.edbo_id for s in report.applied] == [1001]
    assert [s.edbo_id for s in report.failed] == [1002]
    assert len(fake_client.submitted) == 1


def test_round_trip_scenario_submits_unchanged_grade(templates):
    roster = [StudentAssessment.from_dict({
        "edbo_id": 1001,
        "student": {"last_name": "Smith"},
        "discipline": {"Math": {"01-09-2024": 9}},
    })]
    context = GradeSheetContext.for_role(Role.TEACHER, "IPZ-21", "Math", TWELVE_POINT, templates, roster)
    sent = []

    import_grade_sheet(build_grade_rows(context), context, sent.append, lambda: None)

    assert sent == [GradeSubmission(1001, "Math", "12-point", 9, "01-09-2024")]


def test_export_then_import_reproduces_grades(admin_context, fake_client, roster_data):
    before = {item["edbo_id"]: dict(item["discipline"].get("Math", {})) for item in roster_data}

    import_grade_sheet(build_grade_rows(admin_context), admin_context, fake_client.submit_grade, lambda: None)

    after = {item["edbo_id"]: item["discipline"].get("Math", {}) for item in roster_data}
    assert after == before
    assert len(fake_client.submitted) == 3


def test_failed_refetch_keeps_the_report(valid_rows, admin_context, fake_client):
    fake_client.fail_on = 1

    def refetch():
        raise ApiConnectionError("Could not reach the server. Check your connection.")

    with pytest.raises(ImportAbortedError) as exc_info:
        import_grade_sheet(valid_rows, admin_context, fake_client.submit_grade, refetch)

    report = exc_info.value.report
    assert [s.edbo_id for s in report.applied] == [1001]
    assert [s.edbo_id for s in report.failed] == [1002]
    assert report.refetch_error == "Could not reach the server. Check your connection."


def test_failed_refetch_after_clean_import_is_reported(valid_rows, admin_context, fake_client):
    def refetch():
        raise ApiConnectionError("Could not reach the server. Check your connection.")

    report = import_grade_sheet(valid_rows, admin_context, fake_client.submit_grade, refetch)

    assert report.ok
    assert len(fake_client.submitted) == 2
    assert report.refetch_error is not None


def test_sheet_without_grades_skips_refetch(valid_rows, admin_context, fake_client):
    valid_rows[5] = [1001, "Smith Anna Petrivna", "", ""]
    valid_rows[6] = [1002, "Koval Bohdan Ivanovych", "", ""]
    refetched = []

    report = import_grade_sheet(valid_rows, admin_context, fake_client.submit_grade, lambda: refetched.append(True))

    assert report.ok
    assert report.results == []
    assert refetched == []
    assert fake_client.submitted == []
