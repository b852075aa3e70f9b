"""Facade pattern: one entry point over the user, course, notification,
analytics and payment subsystems."""

from itertools import count
from typing import Any

import structlog


logger = structlog.get_logger(__name__)


class FacadeOperationError(Exception):
    """A subsystem step failed."""


class UserService:
    def __init__(self) -> None:
        self.progress: dict[tuple[Any, Any], float] = {}

    def authenticate(self, username: str, password: str) -> dict[str, Any] | None:
        if not username or not password:
            return None
        return {"id": 1, "username": username, "role": "student"}

    def get_user_profile(self, user_id: Any) -> dict[str, Any]:
        return {"id": user_id, "name": "John Doe", "email": "john@example.com"}

    def update_user_progress(self, user_id: Any, course_id: Any, progress: float) -> bool:
        self.progress[(user_id, course_id)] = progress
        return True


class CourseService:
    CATALOG = {
        1: {"title": "JavaScript Basics", "modules": ["Intro", "Variables", "Functions"]},
        2: {"title": "Python Basics", "modules": ["Setup", "Syntax", "Collections"]},
    }

    def __init__(self) -> None:
        self._enrollment_ids = count(101)

    def get_course_details(self, course_id: Any) -> dict[str, Any]:
        course = self.CATALOG.get(course_id)
        if course is None:
            raise FacadeOperationError(f"Course {course_id} not found")
        return {"id": course_id, **course}

    def enroll_user(self, user_id: Any, course_id: Any) -> dict[str, Any]:
        return {"enrollment_id": next(self._enrollment_ids), "status": "enrolled"}

    def get_course_materials(self, course_id: Any) -> list[str]:
        return ["lesson1.pdf", "lesson2.mp4", "quiz1.json"]


class NotificationService:
    def __init__(self) -> None:
        self.outbox: list[tuple[str, str]] = []

    def send_welcome_email(self, email: str, course_name: str) -> bool:
        self.outbox.append((email, f"Welcome to {course_name}"))
        return True

    def send_progress_notification(self, email: str, progress: float) -> bool:
        self.outbox.append((email, f"You are {progress}% complete"))
        return True


class AnalyticsService:
    def __init__(self) -> None:
        self.events: list[tuple[str, Any, Any]] = []

    def track_enrollment(self, user_id: Any, course_id: Any) -> bool:
        self.events.append(("enrollment", user_id, course_id))
        return True

    def track_progress(self, user_id: Any, course_id: Any, progress: float) -> bool:
        self.events.append(("progress", user_id, course_id))
        return True


class PaymentService:
    def __init__(self) -> None:
        self._transactions = count(123)

    def process_payment(self, user_id: Any, amount: float, course_id: Any) -> dict:
        if amount < 0:
            return {"transaction_id": None, "status": "declined"}
        return {"transaction_id": f"TXN{next(self._transactions)}", "status": "completed"}


class LearningManagementFacade:
    def __init__(self) -> None:
        self.user_service = UserService()
        self.course_service = CourseService()
        self.notification_service = NotificationService()
        self.analytics_service = AnalyticsService()
        self.payment_service = PaymentService()

    def _authenticate(self, username: str, password: str) -> dict[str, Any]:
        user = self.user_service.authenticate(username, password)
        if not user:
            raise FacadeOperationError("Authentication failed")
        return user

    def enroll_user_in_course(
        self, username: str, password: str, course_id: Any, payment_amount: float
    ) -> dict[str, Any]:
        """Authenticate, charge, enroll, notify and track in one call."""
        try:
            user = self._authenticate(username, password)
            course = self.course_service.get_course_details(course_id)
            payment = self.payment_service.process_payment(
                user["id"], payment_amount, course_id
            )
            if payment["status"] != "completed":
                raise FacadeOperationError("Payment failed")

            enrollment = self.course_service.enroll_user(user["id"], course_id)
            profile = self.user_service.get_user_profile(user["id"])
            self.notification_service.send_welcome_email(profile["email"], course["title"])
            self.analytics_service.track_enrollment(user["id"], course_id)
        except FacadeOperationError as e:
            logger.warning("facade_enrollment_failed", error=str(e))
            return {"success": False, "error": str(e)}

        return {
            "success": True,
            "enrollment_id": enrollment["enrollment_id"],
            "transaction_id": payment["transaction_id"],
            "course": course["title"],
        }

    def update_learning_progress(
        self, user_id: Any, course_id: Any, progress_percentage: float
    ) -> dict[str, Any]:
        self.user_service.update_user_progress(user_id, course_id, progress_percentage)
        self.analytics_service.track_progress(user_id, course_id, progress_percentage)
        if progress_percentage % 25 == 0:
            profile = self.user_service.get_user_profile(user_id)
            self.notification_service.send_progress_notification(
                profile["email"], progress_percentage
            )
        return {"success": True, "progress": progress_percentage}

    def get_learning_dashboard(self, username: str, password: str) -> dict[str, Any]:
        try:
            user = self._authenticate(username, password)
        except FacadeOperationError as e:
            return {"success": False, "error": str(e)}
        return {
            "success": True,
            "user": self.user_service.get_user_profile(user["id"]),
            "courses": [
                self.course_service.get_course_details(course_id)
                for course_id in CourseService.CATALOG
            ],
        }
