"""FastAPI dependencies for the course catalog."""

from typing import Annotated

from fastapi import Depends

from learntrack.core.services import ServiceSlot
from learntrack.courses.service import CourseService


get_course_service = ServiceSlot[CourseService]("CourseService")

CourseServiceDep = Annotated[CourseService, Depends(get_course_service)]
