"""Adapter pattern: present externally sourced courses with the internal shape."""

from typing import Any, Protocol


class CourseInfoSource(Protocol):
    def get_info(self) -> dict[str, Any]: ...


class InternalCourse:
    def __init__(self, id: str, name: str, instructor: str, lessons: list[str]):
        self.id = id
        self.name = name
        self.instructor = instructor
        self.lessons = lessons

    def get_info(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "instructor": self.instructor,
            "total_lessons": len(self.lessons),
        }


class ExternalCourse:
    """Course record as delivered by a third-party catalog."""

    def __init__(self, course_id: str, title: str, teacher: str, modules: list[str]):
        self.course_id = course_id
        self.title = title
        self.teacher = teacher
        self.modules = modules

    def get_course_data(self) -> dict[str, Any]:
        return {
            "id": self.course_id,
            "course_name": self.title,
            "teacher_name": self.teacher,
            "module_count": len(self.modules),
        }


class ExternalCourseAdapter:
    def __init__(self, external_course: ExternalCourse):
        self.external_course = external_course

    def get_info(self) -> dict[str, Any]:
        data = self.external_course.get_course_data()
        return {
            "id": data["id"],
            "name": data["course_name"],
            "instructor": data["teacher_name"],
            "total_lessons": data["module_count"],
        }


class CourseManager:
    def __init__(self) -> None:
        self.courses: list[CourseInfoSource] = []

    def add_course(self, course: CourseInfoSource) -> None:
        self.courses.append(course)

    def list_courses(self) -> list[dict[str, Any]]:
        return [course.get_info() for course in self.courses]
