"""FastAPI dependencies for quizzes."""

from typing import Annotated

from fastapi import Depends

from learntrack.core.services import ServiceSlot
from learntrack.quizzes.service import QuizService


get_quiz_service = ServiceSlot[QuizService]("QuizService")

QuizServiceDep = Annotated[QuizService, Depends(get_quiz_service)]
