from datetime import date, time
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from timetracker.constants.entry_class import EntryClass
from timetracker.constants.sync_alerts import SyncErrorKind


class EntrySaveRequest(BaseModel):
    """Validated incoming data for creating or editing one entry."""
    id: Optional[int] = Field(None, description="ID of the entry to edit; empty to create a new one")
    project_id: int = Field(..., description="Project to book on")
    customer_id: Optional[int] = Field(None, description="Customer; defaults to the project's customer")
    activity_id: Optional[int] = Field(None, description="Activity performed")
    ticket: str = Field("", description="Ticket key, e.g. 'ABC-123'")
    ext_ticket: Optional[str] = Field(None, description="Original ticket key for internal ticket projects")
    description: str = Field("", description="Work description")
    day: date = Field(..., description="Day of the work")
    start: time = Field(..., description="Start time of day")
    end: time = Field(..., description="End time of day")

    @field_validator("ticket")
    @classmethod
    def normalize_ticket(cls, value: str) -> str:
        return (value or "").strip().upper()


class BulkEntryRequest(BaseModel):
    entries: List[EntrySaveRequest] = Field(..., min_length=1)


class EntrySnapshot(BaseModel):
    """Immutable copy of a time entry, taken before or after an edit."""
    id: Optional[int] = None
    user_id: Optional[int] = None
    project_id: Optional[int] = None
    customer_id: Optional[int] = None
    activity_id: Optional[int] = None
    activity_name: Optional[str] = None
    day: Optional[date] = None
    start: Optional[time] = None
    end: Optional[time] = None
    duration: int = 0
    entry_class: Optional[EntryClass] = None
    ticket: str = ""
    internal_ticket_original_key: Optional[str] = None
    worklog_id: Optional[str] = None
    description: str = ""
    synced_to_ticketsystem: bool = False

    model_config = ConfigDict(from_attributes=True, frozen=True)

    @classmethod
    def from_entry(cls, entry) -> "EntrySnapshot":
        snapshot = cls.model_validate(entry)
        activity = getattr(entry, "activity", None)
        if activity is not None:
            snapshot = snapshot.model_copy(update={"activity_name": activity.name})
        return snapshot


class EntrySaveResult(BaseModel):
    """Locally persisted entry plus an optional advisory about remote sync."""
    entry: EntrySnapshot
    alert: Optional[str] = Field(None, description="Advisory message when remote sync degraded")
    sync_error: Optional[SyncErrorKind] = Field(None, description="Kind of remote failure, if any")
    redirect_url: Optional[str] = Field(None, description="Where to re-authorize after an unauthorized sync")


class WorklogResyncResult(BaseModel):
    """Entry ids of one re-sync run, by outcome."""
    ticket_system_id: int
    synced: List[int] = Field(default_factory=list)
    skipped: List[int] = Field(default_factory=list, description="No ticket, zero duration or booked elsewhere")
    failed: List[int] = Field(default_factory=list)


class EntryDeleteResult(BaseModel):
    success: bool = True
    alert: Optional[str] = None
    sync_error: Optional[SyncErrorKind] = None
    redirect_url: Optional[str] = None
