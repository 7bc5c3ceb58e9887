"""
In-memory record stores for students, courses and instructors.

Each store is a dict keyed by the entity's primary key. Aliasing policy:
``find_all`` / ``search`` / ``filter`` return a new list, but the entities in
it are the stored objects themselves. The stores and the EnrollmentManager are
the only components that mutate entities.

Deleting an entity never cascades to enrollments; the EnrollmentManager checks
references when it needs them.
"""

from __future__ import annotations

from collections import Counter
from typing import Callable, Generic, Iterable, Optional, TypeVar

from campusrecords.errors import DuplicateKeyError, NotFoundError
from campusrecords.model import Course, Instructor, Semester, Student

T = TypeVar("T")


class RecordStore(Generic[T]):
    """
    Keyed collection with CRUD, lookup and substring search.

    Subclasses define ``kind`` (used in error messages), ``_key`` and ``_search_text``.
    """

    kind = "Record"

    def __init__(self) -> None:
        self._items: dict[str, T] = {}

    def _key(self, entity: T) -> str:
        raise NotImplementedError

    def _search_text(self, entity: T) -> list[str]:
        raise NotImplementedError

    def _check_unique(self, entity: T) -> None:
        """Hook for secondary unique fields (called before insert)."""

    def save(self, entity: T) -> None:
        key = self._key(entity)
        if key in self._items:
            raise DuplicateKeyError(self.kind, key)
        self._check_unique(entity)
        self._items[key] = entity

    def save_all(self, entities: Iterable[T]) -> None:
        for entity in entities:
            self.save(entity)

    def find_by_id(self, key: str) -> Optional[T]:
        return self._items.get(key)

    def get(self, key: str) -> T:
        entity = self._items.get(key)
        if entity is None:
            raise NotFoundError(self.kind, key)
        return entity

    def find_all(self) -> list[T]:
        return list(self._items.values())

    def exists(self, key: str) -> bool:
        return key in self._items

    def count(self) -> int:
        return len(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, key: object) -> bool:
        return key in self._items

    def search(self, query: Optional[str]) -> list[T]:
        """
        Case-insensitive substring search. Blank query returns everything.
        """
        q = (query or "").strip().lower()
        if not q:
            return self.find_all()

        out: list[T] = []
        for entity in self._items.values():
            if any(q in t.lower() for t in self._search_text(entity) if t):
                out.append(entity)
        return out

    def filter(self, predicate: Callable[[T], bool]) -> list[T]:
        return [e for e in self._items.values() if predicate(e)]

    def update(self, key: str, entity: T) -> None:
        """
        Replace the entity stored under key. The new entity may carry a new key.
        """
        if key not in self._items:
            raise NotFoundError(self.kind, key)
        new_key = self._key(entity)
        if new_key != key and new_key in self._items:
            raise DuplicateKeyError(self.kind, new_key)
        old = self._items.pop(key)
        try:
            self._check_unique(entity)
        except DuplicateKeyError:
            self._items[key] = old
            raise
        self._items[new_key] = entity

    def delete(self, key: str) -> None:
        self._items.pop(key, None)

    def delete_all(self) -> None:
        self._items.clear()


class StudentStore(RecordStore[Student]):
    kind = "Student"

    def _key(self, entity: Student) -> str:
        return entity.id

    def _search_text(self, entity: Student) -> list[str]:
        return [entity.name.full_name, entity.reg_no, entity.email]

    def _check_unique(self, entity: Student) -> None:
        existing = self.find_by_reg_no(entity.reg_no)
        if existing is not None and existing is not entity:
            raise DuplicateKeyError(self.kind, entity.reg_no, field="reg_no")

    def find_by_reg_no(self, reg_no: str) -> Optional[Student]:
        for s in self._items.values():
            if s.reg_no == reg_no:
                return s
        return None

    def find_active(self) -> list[Student]:
        return self.filter(lambda s: s.active)

    def find_enrolled_in(self, course_code: str) -> list[Student]:
        return self.filter(lambda s: s.is_enrolled_in(course_code))

    def activate(self, student_id: str) -> None:
        self.get(student_id).activate()

    def deactivate(self, student_id: str) -> None:
        self.get(student_id).deactivate()


class CourseStore(RecordStore[Course]):
    kind = "Course"

    def _key(self, entity: Course) -> str:
        return entity.code

    def _search_text(self, entity: Course) -> list[str]:
        return [entity.code, entity.title, entity.department or ""]

    def find_by_instructor(self, instructor_id: str) -> list[Course]:
        return self.filter(lambda c: c.instructor_id == instructor_id)

    def find_by_department(self, department: str) -> list[Course]:
        return self.filter(lambda c: c.department == department)

    def find_by_semester(self, semester: Semester) -> list[Course]:
        return self.filter(lambda c: c.semester is semester)

    def find_active(self) -> list[Course]:
        return self.filter(lambda c: c.active)

    def find_available(self) -> list[Course]:
        return self.filter(lambda c: c.active and not c.is_full)

    def activate(self, code: str) -> None:
        self.get(code).active = True

    def deactivate(self, code: str) -> None:
        self.get(code).active = False

    # --- statistics -------------------------------------------------------

    def department_distribution(self) -> Counter[str]:
        return Counter(c.department for c in self._items.values() if c.department)

    def semester_distribution(self) -> Counter[Semester]:
        return Counter(c.semester for c in self._items.values())

    def average_enrollment(self) -> float:
        if not self._items:
            return 0.0
        return sum(c.current_enrollment for c in self._items.values()) / len(self._items)

    def most_popular(self, limit: int = 5) -> list[Course]:
        ranked = sorted(self._items.values(), key=lambda c: (-c.current_enrollment, c.code))
        return ranked[:limit]

    def total_credits_offered(self) -> int:
        return sum(c.credits for c in self._items.values() if c.active)


class InstructorStore(RecordStore[Instructor]):
    kind = "Instructor"

    def _key(self, entity: Instructor) -> str:
        return entity.id

    def _search_text(self, entity: Instructor) -> list[str]:
        return [entity.name.full_name, entity.employee_id, entity.department]

    def _check_unique(self, entity: Instructor) -> None:
        for other in self._items.values():
            if other.employee_id == entity.employee_id and other is not entity:
                raise DuplicateKeyError(self.kind, entity.employee_id, field="employee_id")

    def find_by_department(self, department: str) -> list[Instructor]:
        return self.filter(lambda i: i.department == department)

    def assign_course(self, instructor_id: str, course_code: str, courses: CourseStore) -> None:
        """
        Make instructor_id the instructor of course_code (both must exist).

        A previous instructor of the course loses the assignment.
        """
        instructor = self.get(instructor_id)
        course = courses.get(course_code)

        previous = self.find_by_id(course.instructor_id) if course.instructor_id else None
        if previous is not None and previous is not instructor:
            previous.unassign_course(course_code)

        course.instructor_id = instructor.id
        instructor.assign_course(course_code)
