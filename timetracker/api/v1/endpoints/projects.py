from typing import Annotated
import logging
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from timetracker.auth import get_current_active_user
from timetracker.connectors.factory import JiraConnectorFactory
from timetracker.database import get_db
from timetracker.exceptions import JiraApiError, JiraApiUnauthorizedError, PreconditionError
from timetracker.models import User
from timetracker.repositories import TimetrackerRepository
from timetracker.schemas.subtickets import SubticketSyncAllResponse, SubticketSyncResponse
from timetracker.services.subticket_sync import SubticketSyncService

log = logging.getLogger(__name__)
router = APIRouter()


def get_subticket_service(db: Session = Depends(get_db)) -> SubticketSyncService:
    repository = TimetrackerRepository(db)
    return SubticketSyncService(repository, JiraConnectorFactory(repository))


def _unauthorized(e: JiraApiUnauthorizedError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_403_FORBIDDEN,
        content={"detail": e.message, "redirect_url": e.redirect_url},
    )


@router.post("/sync-subtickets", response_model=SubticketSyncAllResponse)
async def sync_all_subtickets(
    service: SubticketSyncService = Depends(get_subticket_service),
    current_user: Annotated[User, Depends(get_current_active_user)] = None
):
    """Refresh the sub-ticket cache of every project with a ticket system."""
    log.info(f"Sub-ticket sync of all projects triggered by {current_user.username}")
    try:
        projects = await service.sync_all_project_subtickets()
    except PreconditionError as e:
        raise HTTPException(status_code=e.code, detail=e.message)
    except JiraApiUnauthorizedError as e:
        return _unauthorized(e)
    except JiraApiError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)
    return SubticketSyncAllResponse(projects=projects)


@router.post("/{project_id}/sync-subtickets", response_model=SubticketSyncResponse)
async def sync_project_subtickets(
    project_id: int,
    service: SubticketSyncService = Depends(get_subticket_service),
    current_user: Annotated[User, Depends(get_current_active_user)] = None
):
    """Refresh the sub-ticket cache of one project."""
    try:
        subtickets = await service.sync_project_subtickets(project_id)
    except PreconditionError as e:
        raise HTTPException(status_code=e.code, detail=e.message)
    except JiraApiUnauthorizedError as e:
        return _unauthorized(e)
    except JiraApiError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)
    return SubticketSyncResponse(project_id=project_id, subtickets=subtickets)
