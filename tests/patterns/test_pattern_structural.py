"""Tests for the adapter, decorator and facade examples."""

from learntrack.patterns.adapter import (
    CourseManager,
    ExternalCourse,
    ExternalCourseAdapter,
    InternalCourse,
)
from learntrack.patterns.decorator import (
    AnalyticsDecorator,
    CertificationDecorator,
    Course,
    DownloadableContentDecorator,
    PremiumAccessDecorator,
)
from learntrack.patterns.facade import LearningManagementFacade


class TestAdapter:
    def test_external_course_matches_internal_shape(self) -> None:
        internal = InternalCourse("int-1", "Python 101", "Ada", ["l1", "l2"])
        adapted = ExternalCourseAdapter(
            ExternalCourse("ext-1", "Go Basics", "Rob", ["m1", "m2", "m3"])
        )

        assert adapted.get_info() == {
            "id": "ext-1",
            "name": "Go Basics",
            "instructor": "Rob",
            "total_lessons": 3,
        }
        assert set(adapted.get_info()) == set(internal.get_info())

    def test_manager_lists_both(self) -> None:
        manager = CourseManager()
        manager.add_course(InternalCourse("int-1", "Python 101", "Ada", []))
        manager.add_course(
            ExternalCourseAdapter(ExternalCourse("ext-1", "Go", "Rob", []))
        )
        assert [c["id"] for c in manager.list_courses()] == ["int-1", "ext-1"]


class TestDecorator:
    def test_base_course(self) -> None:
        course = Course("JavaScript", 99)
        assert course.get_description() == "Course: JavaScript"
        assert course.get_features() == ["Basic content access"]

    def test_stacked_add_ons(self) -> None:
        course = PremiumAccessDecorator(CertificationDecorator(Course("JavaScript", 99)))

        assert course.get_price() == 179
        assert course.get_description() == (
            "Course: JavaScript + Certification + Premium Access"
        )
        assert course.get_features() == [
            "Basic content access",
            "Certificate of completion",
            "Premium content",
            "1-on-1 support",
        ]

    def test_all_add_ons(self) -> None:
        course = Course("JavaScript", 99)
        for decorator in (
            CertificationDecorator,
            PremiumAccessDecorator,
            AnalyticsDecorator,
            DownloadableContentDecorator,
        ):
            course = decorator(course)

        assert course.get_price() == 214
        assert len(course.get_features()) == 8


class TestFacade:
    def test_enrollment(self) -> None:
        lms = LearningManagementFacade()

        result = lms.enroll_user_in_course("john", "secret", 1, 49.0)

        assert result == {
            "success": True,
            "enrollment_id": 101,
            "transaction_id": "TXN123",
            "course": "JavaScript Basics",
        }
        assert lms.notification_service.outbox == [
            ("john@example.com", "Welcome to JavaScript Basics")
        ]
        assert lms.analytics_service.events == [("enrollment", 1, 1)]

    def test_enrollment_failures(self) -> None:
        lms = LearningManagementFacade()

        assert lms.enroll_user_in_course("", "secret", 1, 10)["error"] == (
            "Authentication failed"
        )
        assert lms.enroll_user_in_course("john", "secret", 1, -1)["error"] == (
            "Payment failed"
        )
        assert lms.enroll_user_in_course("john", "secret", 9, 10)["error"] == (
            "Course 9 not found"
        )
        assert lms.notification_service.outbox == []

    def test_progress_notifies_on_quarters(self) -> None:
        lms = LearningManagementFacade()

        lms.update_learning_progress(1, 1, 30)
        lms.update_learning_progress(1, 1, 50)

        assert lms.user_service.progress[(1, 1)] == 50
        assert lms.notification_service.outbox == [
            ("john@example.com", "You are 50% complete")
        ]

    def test_dashboard(self) -> None:
        lms = LearningManagementFacade()
        assert len(lms.get_learning_dashboard("john", "secret")["courses"]) == 2
        assert lms.get_learning_dashboard("john", "")["success"] is False
