"""Observer pattern: publish learning events to interested subsystems.

``ProgressService`` drives a ``LearningProgressTracker`` whenever a course
completion percentage changes; crossed milestones become achievements.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

import structlog

from learntrack.core.database.columns import utc_now


logger = structlog.get_logger(__name__)

MILESTONES = (25, 50, 75, 100)


class EventType(str, Enum):
    PROGRESS_UPDATED = "PROGRESS_UPDATED"
    MILESTONE_REACHED = "MILESTONE_REACHED"
    USER_ENROLLED = "USER_ENROLLED"
    ASSIGNMENT_COMPLETED = "ASSIGNMENT_COMPLETED"


@dataclass
class LearningEvent:
    type: EventType
    user_id: str
    course_id: str
    old_progress: float = 0
    new_progress: float = 0
    milestone: int | None = None
    assignment_id: str | None = None
    score: float | None = None
    occurred_at: datetime = field(default_factory=utc_now)


class Observer:
    """Base observer; subclasses override ``update``."""

    def update(self, event: LearningEvent) -> None:
        raise NotImplementedError


class Subject:
    """Keeps a list of observers and notifies them in order.

    A failing observer is logged and skipped so that the others still run.
    """

    def __init__(self) -> None:
        self.observers: list[Observer] = []

    def subscribe(self, observer: Observer) -> None:
        if observer not in self.observers:
            self.observers.append(observer)

    def unsubscribe(self, observer: Observer) -> None:
        self.observers = [o for o in self.observers if o is not observer]

    def notify(self, event: LearningEvent) -> None:
        for observer in list(self.observers):
            try:
                observer.update(event)
            except Exception as e:
                logger.warning(
                    "observer_failed",
                    observer=type(observer).__name__,
                    event_type=event.type.value,
                    error=str(e),
                )


def crossed_milestones(old_progress: float, new_progress: float) -> list[int]:
    """Milestones passed when moving from ``old_progress`` to ``new_progress``."""
    return [m for m in MILESTONES if old_progress < m <= new_progress]


class LearningProgressTracker(Subject):
    """Subject publishing progress, milestone, enrollment and assignment events."""

    def __init__(self) -> None:
        super().__init__()
        self.user_progress: dict[tuple[str, str], float] = {}

    def update_progress(
        self,
        user_id: Any,
        course_id: Any,
        progress: float,
        previous: float | None = None,
    ) -> list[int]:
        """Record ``progress`` and publish the resulting events.

        Without ``previous`` the tracker compares against the last value it
        remembers for the pair. Callers that load progress from storage pass
        ``previous`` instead, and nothing is remembered for them.
        Returns the milestones crossed by this update.
        """
        key = (str(user_id), str(course_id))
        if previous is None:
            old = self.user_progress.get(key, 0)
            self.user_progress[key] = progress
        else:
            old = previous

        self.notify(
            LearningEvent(
                type=EventType.PROGRESS_UPDATED,
                user_id=key[0],
                course_id=key[1],
                old_progress=old,
                new_progress=progress,
            )
        )

        milestones = crossed_milestones(old, progress)
        for milestone in milestones:
            self.notify(
                LearningEvent(
                    type=EventType.MILESTONE_REACHED,
                    user_id=key[0],
                    course_id=key[1],
                    old_progress=old,
                    new_progress=progress,
                    milestone=milestone,
                )
            )
        return milestones

    def enroll_user(self, user_id: Any, course_id: Any) -> None:
        self.notify(
            LearningEvent(
                type=EventType.USER_ENROLLED,
                user_id=str(user_id),
                course_id=str(course_id),
            )
        )

    def complete_assignment(
        self, user_id: Any, course_id: Any, assignment_id: str, score: float
    ) -> None:
        self.notify(
            LearningEvent(
                type=EventType.ASSIGNMENT_COMPLETED,
                user_id=str(user_id),
                course_id=str(course_id),
                assignment_id=assignment_id,
                score=score,
            )
        )


# ==============================================================================
# Observers
# ==============================================================================


class EventLogObserver(Observer):
    """Writes every event to the structured log."""

    def update(self, event: LearningEvent) -> None:
        logger.info(
            "learning_event",
            event_type=event.type.value,
            user_id=event.user_id,
            course_id=event.course_id,
            progress=event.new_progress,
            milestone=event.milestone,
        )


class EmailNotificationObserver(Observer):
    """Queues notification emails; ``sent`` holds ``(kind, user_id, detail)``."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str, Any]] = []

    def _send(self, kind: str, event: LearningEvent, detail: Any = None) -> None:
        self.sent.append((kind, event.user_id, detail))
        logger.info(
            "email_queued",
            kind=kind,
            user_id=event.user_id,
            course_id=event.course_id,
            detail=detail,
        )

    def update(self, event: LearningEvent) -> None:
        if event.type is EventType.PROGRESS_UPDATED:
            if event.new_progress - event.old_progress >= 10:
                self._send("progress", event, event.new_progress)
        elif event.type is EventType.MILESTONE_REACHED:
            self._send("milestone", event, event.milestone)
        elif event.type is EventType.USER_ENROLLED:
            self._send("welcome", event)
        elif event.type is EventType.ASSIGNMENT_COMPLETED:
            self._send("assignment", event, event.score)


class AnalyticsObserver(Observer):
    """Counts events by type."""

    def __init__(self) -> None:
        self.analytics = {
            "progress_updates": 0,
            "milestones_achieved": 0,
            "enrollments": 0,
            "assignments_completed": 0,
        }

    _COUNTERS = {
        EventType.PROGRESS_UPDATED: "progress_updates",
        EventType.MILESTONE_REACHED: "milestones_achieved",
        EventType.USER_ENROLLED: "enrollments",
        EventType.ASSIGNMENT_COMPLETED: "assignments_completed",
    }

    def update(self, event: LearningEvent) -> None:
        self.analytics[self._COUNTERS[event.type]] += 1

    def get_stats(self) -> dict[str, int]:
        return dict(self.analytics)


class BadgeSystemObserver(Observer):
    def __init__(self) -> None:
        self.user_badges: dict[str, list[str]] = {}

    def update(self, event: LearningEvent) -> None:
        if event.type is EventType.MILESTONE_REACHED:
            self.award_badge(event.user_id, f"{event.milestone}% Complete")
        elif event.type is EventType.ASSIGNMENT_COMPLETED:
            score = event.score or 0
            if score >= 95:
                self.award_badge(event.user_id, "Perfect Score")
            elif score >= 80:
                self.award_badge(event.user_id, "High Achiever")
        elif event.type is EventType.USER_ENROLLED:
            self.award_badge(event.user_id, "Welcome Aboard")

    def award_badge(self, user_id: str, badge: str) -> None:
        badges = self.user_badges.setdefault(user_id, [])
        if badge not in badges:
            badges.append(badge)
            logger.info("badge_awarded", user_id=user_id, badge=badge)

    def get_user_badges(self, user_id: str) -> list[str]:
        return list(self.user_badges.get(str(user_id), []))


class LeaderboardObserver(Observer):
    """Scores users: progress points plus a tenth of assignment scores."""

    def __init__(self) -> None:
        self.leaderboard: dict[str, float] = {}

    def update(self, event: LearningEvent) -> None:
        if event.type is EventType.PROGRESS_UPDATED:
            self.update_user_score(event.user_id, event.new_progress)
        elif event.type is EventType.ASSIGNMENT_COMPLETED:
            self.update_user_score(event.user_id, (event.score or 0) * 0.1)

    def update_user_score(self, user_id: str, points: float) -> None:
        self.leaderboard[user_id] = self.leaderboard.get(user_id, 0) + points

    def top_users(self, limit: int = 10) -> list[dict[str, Any]]:
        ranked = sorted(self.leaderboard.items(), key=lambda kv: kv[1], reverse=True)
        return [{"user_id": uid, "score": score} for uid, score in ranked[:limit]]
