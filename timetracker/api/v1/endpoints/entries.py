from typing import Annotated, List, Optional
import logging
from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from timetracker.auth import get_current_active_user
from timetracker.constants.sync_alerts import SyncErrorKind
from timetracker.database import get_db
from timetracker.exceptions import EntryValidationError, JiraApiUnauthorizedError, PreconditionError
from timetracker.models import User
from timetracker.repositories import TimetrackerRepository
from timetracker.schemas.entry import (
    BulkEntryRequest,
    EntryDeleteResult,
    EntrySaveRequest,
    EntrySaveResult,
    WorklogResyncResult,
)
from timetracker.services.entry_service import EntryService

log = logging.getLogger(__name__)
router = APIRouter()


def get_entry_service(db: Session = Depends(get_db)) -> EntryService:
    return EntryService(TimetrackerRepository(db))


def _forbidden_with_redirect(result) -> JSONResponse:
    # The client forwards the user to the ticket system's authorization page
    return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content=result.model_dump(mode="json"))


@router.post("/save", response_model=EntrySaveResult)
async def save_entry(
    payload: EntrySaveRequest,
    service: EntryService = Depends(get_entry_service),
    current_user: Annotated[User, Depends(get_current_active_user)] = None
):
    """Create or update an entry and sync its Jira work-log."""
    try:
        result = await service.save_entry(current_user, payload)
    except EntryValidationError as e:
        raise HTTPException(status_code=e.code, detail=e.message)

    if result.sync_error == SyncErrorKind.UNAUTHORIZED:
        return _forbidden_with_redirect(result)
    return result


@router.post("/bulk", response_model=List[EntrySaveResult])
async def bulk_save_entries(
    payload: BulkEntryRequest,
    service: EntryService = Depends(get_entry_service),
    current_user: Annotated[User, Depends(get_current_active_user)] = None
):
    """Save several entries in order."""
    try:
        return await service.bulk_save(current_user, payload.entries)
    except EntryValidationError as e:
        raise HTTPException(status_code=e.code, detail=e.message)


@router.post("/resync-worklogs", response_model=WorklogResyncResult)
async def resync_worklogs(
    ticket_system_id: int,
    limit: Optional[int] = Query(None, ge=1, le=500),
    service: EntryService = Depends(get_entry_service),
    current_user: Annotated[User, Depends(get_current_active_user)] = None
):
    """Retry the Jira work-log sync of the current user's unsynced entries."""
    log.info(f"Work-log re-sync on ticket system {ticket_system_id} triggered by {current_user.username}")
    try:
        return await service.resync_worklogs(current_user, ticket_system_id, limit)
    except PreconditionError as e:
        raise HTTPException(status_code=e.code, detail=e.message)
    except JiraApiUnauthorizedError as e:
        return JSONResponse(
            status_code=status.HTTP_403_FORBIDDEN,
            content={"detail": e.message, "redirect_url": e.redirect_url},
        )


@router.post("/{entry_id}/delete", response_model=EntryDeleteResult)
async def delete_entry(
    entry_id: int,
    service: EntryService = Depends(get_entry_service),
    current_user: Annotated[User, Depends(get_current_active_user)] = None
):
    """Delete an entry together with its Jira work-log."""
    try:
        result = await service.delete_entry(current_user, entry_id)
    except EntryValidationError as e:
        raise HTTPException(status_code=e.code, detail=e.message)

    if result.sync_error == SyncErrorKind.UNAUTHORIZED:
        return _forbidden_with_redirect(result)
    return result
