"""FastAPI dependencies for modules."""

from typing import Annotated

from fastapi import Depends

from learntrack.core.services import ServiceSlot
from learntrack.modules.service import ModuleService


get_module_service = ServiceSlot[ModuleService]("ModuleService")

ModuleServiceDep = Annotated[ModuleService, Depends(get_module_service)]
