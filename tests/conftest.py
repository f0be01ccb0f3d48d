# tests/conftest.py

import copy

import pytest

from unified.config_schema import get_default_config
from unified.errors import ApiError
from unified.models import (
    GradeSheetContext,
    GroupDetail,
    Role,
    StudentAssessment,
    TWELVE_POINT,
)


class FakeClient:
    """In-memory stand-in for UnifiedClient; grades written are visible on refetch."""

    def __init__(self, roster, groups=None, assigned=None, fail_on=None):
        self.roster = roster
        self.groups = groups or []
        self.assigned = assigned or {}
        self.fail_on = fail_on
        self.submitted = []
        self.fetch_count = 0

    def fetch_groups(self):
        return list(self.groups)

    def fetch_assigned_disciplines(self, group_code):
        return list(self.assigned.get(group_code, []))

    def fetch_assessments(self, group_code, discipline):
        self.fetch_count += 1
        return [StudentAssessment.from_dict(copy.deepcopy(item)) for item in self.roster]

    def submit_grade(self, submission):
        if self.fail_on is not None and len(self.submitted) == self.fail_on:
            raise ApiError("Server unavailable", 503)
        self.submitted.append(submission)
        for item in self.roster:
            if item["edbo_id"] == submission.edbo_id:
                item["discipline"].setdefault(submission.subject, {})[submission.date] = submission.grade


@pytest.fixture
def config():
    return get_default_config()


@pytest.fixture
def templates(config):
    return config["templates"]


@pytest.fixture
def roster_data():
    return [
        {
            "edbo_id": 1001,
            "student": {"first_name": "Anna", "middle_name": "Petrivna", "last_name": "Smith"},
            "discipline": {"Math": {"01-09-2024": 9, "15-09-2024": 11}},
        },
        {
            "edbo_id": 1002,
            "student": {"first_name": "Bohdan", "middle_name": "Ivanovych", "last_name": "Koval"},
            "discipline": {"Math": {"02-10-2024": 7}, "Physics": {"03-09-2024": 12}},
        },
        {
            "edbo_id": 1003,
            "student": {"first_name": "Olena", "middle_name": "", "last_name": "Bondar"},
            "discipline": {},
        },
    ]


@pytest.fixture
def sample_roster(roster_data):
    return [StudentAssessment.from_dict(copy.deepcopy(item)) for item in roster_data]


@pytest.fixture
def admin_context(sample_roster, templates):
    return GradeSheetContext.for_role(Role.ADMIN, "IPZ-21", "Math", TWELVE_POINT, templates, sample_roster)


@pytest.fixture
def teacher_context(sample_roster, templates):
    return GradeSheetContext.for_role(Role.TEACHER, "IPZ-21", "Math", TWELVE_POINT, templates, sample_roster)


@pytest.fixture
def sample_groups():
    return [
        GroupDetail.from_dict({
            "degree": "bachelor",
            "course": 2,
            "group": {"en": "IPZ-21", "ua": "ІПЗ-21"},
            "specialty": "Software engineering",
            "disciplines": {"Math": 90, "Physics": 60},
            "class_teacher_edbo": 555,
        }),
    ]


@pytest.fixture
def fake_client(roster_data, sample_groups):
    return FakeClient(
        roster_data,
        groups=sample_groups,
        assigned={"IPZ-21": ["Math"]},
    )


@pytest.fixture
def valid_rows():
    return [
        ["Template", "UnifiedWeb Admin Grades"],
        ["Group", "IPZ-21"],
        ["Discipline", "Math"],
        ["Grade System", "12-point"],
        ["EDBO ID", "Student", "01-09-2024", "15-09-2024"],
        [1001, "Smith Anna Petrivna", 10, ""],
        [1002, "Koval Bohdan Ivanovych", "", 8],
    ]
