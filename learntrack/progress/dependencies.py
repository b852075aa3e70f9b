"""FastAPI dependencies for learner progress."""

from typing import Annotated

from fastapi import Depends

from learntrack.core.services import ServiceSlot
from learntrack.progress.service import ProgressService
from learntrack.progress.sync import ProgressSyncService


get_progress_service = ServiceSlot[ProgressService]("ProgressService")
get_sync_service = ServiceSlot[ProgressSyncService]("ProgressSyncService")

ProgressServiceDep = Annotated[ProgressService, Depends(get_progress_service)]
SyncServiceDep = Annotated[ProgressSyncService, Depends(get_sync_service)]
