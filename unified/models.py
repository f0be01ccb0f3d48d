"""Domain types shared by the exporter, importer, cell editor and API client."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .errors import RoleNotAllowedError, UnknownGradeSystemError, UnknownRoleError

DEGREE_ORDER = ("skilled_worker", "bachelor", "junior_specialist", "master")


class Role(str, Enum):
    ADMIN = "admin"
    TEACHER = "teacher"
    STUDENT = "student"

    @classmethod
    def parse(cls, value: Any) -> Role:
        """Normalize any role spelling the API sends ("admins", " Student ")."""
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        if text.endswith("s"):
            text = text[:-1]
        for role in cls:
            if role.value == text:
                return role
        raise UnknownRoleError(f"Unknown role: {value!r}")

    @property
    def label(self) -> str:
        return self.value.capitalize()

    @property
    def can_exchange_grades(self) -> bool:
        return self is not Role.STUDENT

    def template_name(self, templates: dict[str, str]) -> str:
        """Template literal this role writes into row 1 of an export."""
        if not self.can_exchange_grades:
            raise RoleNotAllowedError(f"{self.label} accounts cannot export grade sheets")
        return templates[self.value]

    def accepted_templates(self, templates: dict[str, str]) -> tuple[str, ...]:
        """Template literals this role accepts on import.

        Admins also accept teacher sheets for backward compatibility.
        """
        if self is Role.ADMIN:
            return (templates["admin"], templates["teacher"])
        return (self.template_name(templates),)


@dataclass(frozen=True)
class GradeSystem:
    name: str
    max_grade: int

    @classmethod
    def from_config(cls, config: dict[str, Any], name: str | None = None) -> GradeSystem:
        name = name or config["grade_system"]
        systems = config.get("grade_systems", {})
        if name not in systems:
            raise UnknownGradeSystemError(f"Unknown grade system: {name!r}")
        return cls(name=name, max_grade=int(systems[name]))


TWELVE_POINT = GradeSystem("12-point", 12)
FIVE_POINT = GradeSystem("5-point", 5)


@dataclass
class StudentInfo:
    first_name: str = ""
    middle_name: str = ""
    last_name: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> StudentInfo:
        data = data or {}
        return cls(
            first_name=data.get("first_name") or "",
            middle_name=data.get("middle_name") or "",
            last_name=data.get("last_name") or "",
        )

    @property
    def full_name(self) -> str:
        """Name as written into grade sheets: last, first, middle."""
        return f"{self.last_name} {self.first_name} {self.middle_name}"

    @property
    def short_name(self) -> str:
        return f"{self.last_name} {self.first_name}"


@dataclass
class StudentAssessment:
    edbo_id: int
    student: StudentInfo = field(default_factory=StudentInfo)
    discipline: dict[str, dict[str, int]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StudentAssessment:
        disciplines = {}
        for name, grades in (data.get("discipline") or {}).items():
            disciplines[name] = dict(grades or {})
        return cls(
            edbo_id=int(data["edbo_id"]),
            student=StudentInfo.from_dict(data.get("student")),
            discipline=disciplines,
        )

    def grades_for(self, discipline: str) -> dict[str, int]:
        return self.discipline.get(discipline) or {}

    def grade_on(self, discipline: str, date: str) -> int | None:
        return self.grades_for(discipline).get(date)

    def average(self, discipline: str) -> float | None:
        values = list(self.grades_for(discipline).values())
        if not values:
            return None
        return sum(values) / len(values)


@dataclass
class GroupDetail:
    code: str
    title: str = ""
    degree: str = ""
    course: int = 0
    specialty: str = ""
    disciplines: dict[str, int] = field(default_factory=dict)
    class_teacher_edbo: int | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GroupDetail:
        group = data.get("group") or {}
        return cls(
            code=group.get("en", ""),
            title=group.get("ua", ""),
            degree=data.get("degree", ""),
            course=data.get("course", 0),
            specialty=data.get("specialty", ""),
            disciplines=dict(data.get("disciplines") or {}),
            class_teacher_edbo=data.get("class_teacher_edbo"),
        )

    def discipline_names(self) -> list[str]:
        return list(self.disciplines.keys())


@dataclass(frozen=True)
class GradeSubmission:
    edbo_id: int
    subject: str
    grade_system: str
    grade: int
    date: str

    def to_payload(self) -> dict[str, Any]:
        """Body of the remote grade-update call."""
        return {
            "subject": self.subject,
            "grade_system": self.grade_system,
            "grade": self.grade,
            "date": self.date,
        }


@dataclass
class GradeSheetContext:
    """Current UI selection a grade sheet is exported from or imported into."""

    role: Role
    group_code: str
    discipline: str
    grade_system: GradeSystem
    template_name: str
    accepted_templates: tuple[str, ...]
    roster: list[StudentAssessment] = field(default_factory=list)

    @classmethod
    def for_role(
        cls,
        role: Role | str,
        group_code: str,
        discipline: str,
        grade_system: GradeSystem,
        templates: dict[str, str],
        roster: list[StudentAssessment] | None = None,
    ) -> GradeSheetContext:
        role = Role.parse(role)
        return cls(
            role=role,
            group_code=group_code,
            discipline=discipline,
            grade_system=grade_system,
            template_name=role.template_name(templates),
            accepted_templates=role.accepted_templates(templates),
            roster=list(roster or []),
        )

    def roster_by_id(self) -> dict[int, StudentAssessment]:
        return {student.edbo_id: student for student in self.roster}


@dataclass(frozen=True)
class AuthSession:
    token: str
    role: Role
