"""Decorator pattern: stack paid add-ons onto a course offering."""


class Course:
    """A sellable course with a base price."""

    def __init__(self, title: str, price: float):
        self.title = title
        self.price = price

    def get_description(self) -> str:
        return f"Course: {self.title}"

    def get_price(self) -> float:
        return self.price

    def get_features(self) -> list[str]:
        return ["Basic content access"]


class CourseDecorator(Course):
    """Wraps a course and adds ``extra_cost`` and ``extra_features``."""

    label = ""
    extra_cost: float = 0
    extra_features: tuple[str, ...] = ()

    def __init__(self, course: Course):
        super().__init__(course.title, course.price)
        self.course = course

    def get_description(self) -> str:
        return f"{self.course.get_description()} + {self.label}"

    def get_price(self) -> float:
        return self.course.get_price() + self.extra_cost

    def get_features(self) -> list[str]:
        return [*self.course.get_features(), *self.extra_features]


class CertificationDecorator(CourseDecorator):
    label = "Certification"
    extra_cost = 50
    extra_features = ("Certificate of completion",)


class PremiumAccessDecorator(CourseDecorator):
    label = "Premium Access"
    extra_cost = 30
    extra_features = ("Premium content", "1-on-1 support")


class AnalyticsDecorator(CourseDecorator):
    label = "Analytics"
    extra_cost = 20
    extra_features = ("Detailed progress analytics", "Performance insights")


class DownloadableContentDecorator(CourseDecorator):
    label = "Downloadable Content"
    extra_cost = 15
    extra_features = ("Offline content download", "PDF materials")
