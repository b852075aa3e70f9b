"""Walk-through of every pattern in the package.

Each ``demo_*`` function exercises one pattern, logs what happened and
returns a summary dict; ``run_all`` collects them.
"""

from typing import Any

import structlog

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
from learntrack.patterns.factory import CourseBuilder
from learntrack.patterns.middleware import (
    AuthenticationMiddleware,
    AuthorizationMiddleware,
    CachingMiddleware,
    LoggingMiddleware,
    MiddlewarePipeline,
    RateLimitMiddleware,
    ValidationMiddleware,
)
from learntrack.patterns.observer import (
    AnalyticsObserver,
    BadgeSystemObserver,
    EmailNotificationObserver,
    LeaderboardObserver,
    LearningProgressTracker,
)
from learntrack.patterns.prototype import CourseTemplateFactory, LearningPathFactory
from learntrack.patterns.proxy import LearningResourceManager
from learntrack.patterns.singleton import ConfigurationManager, DatabaseConnection
from learntrack.patterns.strategy import (
    AdaptiveDeliveryStrategy,
    AssessmentGenerator,
    CompetencyBasedStrategy,
    ContentManager,
    GradeCalculator,
    PassFailStrategy,
    ProjectAssessmentStrategy,
    QuizAssessmentStrategy,
    SequentialDeliveryStrategy,
    WeightedAverageStrategy,
)


logger = structlog.get_logger(__name__)


def demo_factory() -> dict[str, Any]:
    course = (
        CourseBuilder("Web Development Fundamentals")
        .add_from_template("intro-video")
        .add_from_template("chapter-reading", {"title": "HTML Basics"})
        .add_content("video", {"title": "CSS Styling", "duration": 25})
        .add_from_template("knowledge-check")
        .add_from_template("coding-exercise", {"title": "Build a Landing Page"})
        .build()
    )
    for content in course["contents"]:
        logger.info("factory_content", info=content.get_info(), start=content.start())
    return {
        "content_count": course["content_count"],
        "total_duration": course["total_duration"],
    }


def demo_observer() -> dict[str, Any]:
    tracker = LearningProgressTracker()
    email = EmailNotificationObserver()
    analytics = AnalyticsObserver()
    badges = BadgeSystemObserver()
    leaderboard = LeaderboardObserver()
    for observer in (email, analytics, badges, leaderboard):
        tracker.subscribe(observer)

    tracker.enroll_user("user1", "js-101")
    tracker.update_progress("user1", "js-101", 30)
    tracker.update_progress("user1", "js-101", 55)
    tracker.complete_assignment("user1", "js-101", "assign-1", 96)
    tracker.enroll_user("user2", "js-101")
    tracker.update_progress("user2", "js-101", 80)

    return {
        "stats": analytics.get_stats(),
        "badges": badges.get_user_badges("user1"),
        "leaderboard": leaderboard.top_users(),
        "emails": len(email.sent),
    }


async def demo_proxy() -> dict[str, Any]:
    manager = LearningResourceManager()
    manager.add_resource("intro", "Intro to Python", "print('hello')", 5)
    manager.add_resource("advanced", "Advanced Python", "metaclasses", 50, premium=True)

    student = manager.get_resource("intro", "student", "free")
    await student.get_content()
    await student.get_content()

    denied = None
    premium = manager.get_resource("advanced", "student", "free")
    try:
        await premium.get_content()
    except PermissionError as e:
        denied = str(e)
        logger.info("proxy_access_denied", reason=denied)

    lazy = manager.create_lazy_resource(
        {"id": "lazy", "title": "Lazy Resource", "content": "deferred", "size": 1}
    )
    loaded_before = lazy.get_metadata()["loaded"]
    await lazy.get_content()

    return {
        "statistics": student.get_statistics(),
        "denied": denied,
        "lazy_loaded": (loaded_before, lazy.get_metadata()["loaded"]),
    }


def demo_strategy() -> dict[str, Any]:
    scores = {"assignments": [85, 92, 78], "quizzes": [88, 95], "final_exam": 90}
    calculator = GradeCalculator(WeightedAverageStrategy())
    weighted = calculator.calculate_student_grade(scores)
    calculator.set_strategy(PassFailStrategy())
    pass_fail = calculator.calculate_student_grade(scores)
    calculator.set_strategy(
        CompetencyBasedStrategy(
            [
                {"id": "syntax", "name": "Syntax", "mastery_threshold": 80},
                {"id": "testing", "name": "Testing", "mastery_threshold": 75},
            ]
        )
    )
    competency = calculator.calculate_student_grade(
        {"competency_scores": {"syntax": 90, "testing": 60}}
    )

    content = [
        {"id": 1, "type": "lesson", "order": 2, "difficulty": 1, "topic": "loops"},
        {"id": 2, "type": "quiz", "order": 1, "difficulty": 2, "topic": "functions"},
    ]
    delivery = ContentManager(SequentialDeliveryStrategy())
    sequential = delivery.deliver_content(content, {})
    delivery.set_delivery_strategy(AdaptiveDeliveryStrategy())
    adaptive = delivery.deliver_content(
        content, {"learning_style": "quiz", "weak_areas": ["loops"]}
    )

    topics = [{"id": "t1", "name": "Loops"}, {"id": "t2", "name": "Functions"}]
    generator = AssessmentGenerator(QuizAssessmentStrategy())
    quiz = generator.create_assessment(topics, 2)
    generator.set_assessment_strategy(ProjectAssessmentStrategy())
    project = generator.create_assessment(topics, 3)

    logger.info(
        "strategy_grades",
        weighted=weighted["letter_grade"],
        pass_fail=pass_fail["final_grade"],
        competency=competency["final_grade"],
    )
    return {
        "weighted": weighted["final_grade"],
        "pass_fail": pass_fail["final_grade"],
        "competency": competency["final_grade"],
        "sequential_first": sequential["current_item"]["id"],
        "adaptive_first": adaptive["current_item"]["id"],
        "quiz_questions": len(quiz["questions"]),
        "project_title": project["title"],
    }


def demo_singleton() -> dict[str, Any]:
    db = DatabaseConnection.get_instance()
    db.connect("cassandra://localhost:9042/learntrack")
    config = ConfigurationManager.get_instance()
    return {
        "same_database": db is DatabaseConnection.get_instance(),
        "same_config": config is ConfigurationManager.get_instance(),
        "app_name": config.get("app.name"),
    }


def demo_decorator() -> dict[str, Any]:
    course = Course("JavaScript Fundamentals", 99)
    for decorator in (
        CertificationDecorator,
        PremiumAccessDecorator,
        AnalyticsDecorator,
        DownloadableContentDecorator,
    ):
        course = decorator(course)
    logger.info(
        "decorated_course",
        description=course.get_description(),
        price=course.get_price(),
    )
    return {"price": course.get_price(), "features": course.get_features()}


def demo_adapter() -> dict[str, Any]:
    manager = CourseManager()
    manager.add_course(InternalCourse("int-1", "Python 101", "Ada", ["l1", "l2", "l3"]))
    manager.add_course(
        ExternalCourseAdapter(ExternalCourse("ext-1", "Go Basics", "Rob", ["m1", "m2"]))
    )
    return {"courses": manager.list_courses()}


def demo_facade() -> dict[str, Any]:
    lms = LearningManagementFacade()
    enrollment = lms.enroll_user_in_course("john_doe", "secret", 1, 99.99)
    progress = lms.update_learning_progress(1, 1, 50)
    dashboard = lms.get_learning_dashboard("john_doe", "secret")
    return {
        "enrollment": enrollment,
        "progress": progress,
        "dashboard_courses": len(dashboard["courses"]),
    }


def demo_prototype() -> dict[str, Any]:
    courses = CourseTemplateFactory()
    react = courses.create_course(
        "javascript-beginner",
        {
            "title": "React Fundamentals",
            "additional_modules": [{"title": "Hooks", "duration": 4, "type": "lesson"}],
        },
    )
    paths = LearningPathFactory()
    path = paths.create_learning_path("data-scientist", {"name": "ML Engineer Path"})
    return {
        "course": react.get_info(),
        "path": path.get_info(),
        "templates": courses.get_available_templates(),
    }


def demo_middleware() -> dict[str, Any]:
    pipeline = (
        MiddlewarePipeline()
        .use(LoggingMiddleware())
        .use(AuthenticationMiddleware())
        .use(RateLimitMiddleware(max_requests=5))
        .use(
            ValidationMiddleware(
                [{"field": "title", "required": True, "type": "string", "min_length": 3}]
            )
        )
        .use(AuthorizationMiddleware("student"))
        .use(CachingMiddleware())
    )

    def handler(request, response):
        response["data"] = {"message": "ok", "user": request["user"]["id"]}
        return response

    headers = {"authorization": "Bearer valid-token"}
    ok = pipeline.execute(
        {"method": "GET", "url": "/courses", "headers": headers, "body": {"title": "Intro"}},
        handler,
    )
    cached = pipeline.execute(
        {"method": "GET", "url": "/courses", "headers": headers, "body": {"title": "Intro"}},
        handler,
    )
    unauthenticated = pipeline.execute({"method": "GET", "url": "/courses"}, handler)
    invalid = pipeline.execute(
        {"method": "POST", "url": "/courses", "headers": headers, "body": {"title": "x"}},
        handler,
    )
    return {
        "ok": ok["status"],
        "cached": cached["cached"],
        "unauthenticated": unauthenticated["status"],
        "invalid": invalid["status"],
    }


async def run_all() -> dict[str, dict[str, Any]]:
    """Run every demo and return their summaries keyed by pattern name."""
    results = {
        "factory": demo_factory(),
        "observer": demo_observer(),
        "proxy": await demo_proxy(),
        "strategy": demo_strategy(),
        "singleton": demo_singleton(),
        "decorator": demo_decorator(),
        "adapter": demo_adapter(),
        "facade": demo_facade(),
        "prototype": demo_prototype(),
        "middleware": demo_middleware(),
    }
    for name, summary in results.items():
        logger.info("pattern_demo_completed", pattern=name, summary=summary)
    return results
