from typing import List, Optional, Tuple
import logging

from timetracker.config import settings
from timetracker.connectors.factory import JiraConnectorFactory
from timetracker.constants.sync_alerts import AlertCode, SyncErrorKind, explain_alert
from timetracker.constants.ticket_system_type import UserType
from timetracker.exceptions import (
    EntryValidationError,
    JiraApiError,
    JiraApiInvalidResourceError,
    JiraApiUnauthorizedError,
    PreconditionError,
)
from timetracker.models import Project, TimeEntry, User
from timetracker.repositories import TimetrackerRepository
from timetracker.schemas.entry import (
    EntryDeleteResult,
    EntrySaveRequest,
    EntrySaveResult,
    EntrySnapshot,
    WorklogResyncResult,
)
from timetracker.services.entry_classifier import EntryClassifier
from timetracker.services.worklog_reconciler import WorklogReconciler
from timetracker.utils.ticket import check_ticket_format, ticket_prefix

log = logging.getLogger(__name__)


def sync_error_kind(error: JiraApiError) -> SyncErrorKind:
    if isinstance(error, JiraApiUnauthorizedError):
        return SyncErrorKind.UNAUTHORIZED
    if isinstance(error, JiraApiInvalidResourceError):
        return SyncErrorKind.INVALID_RESOURCE
    return SyncErrorKind.GENERIC


class EntryService:
    """
    Save-time entry point for time entries.

    A save always commits locally first. Syncing the Jira work-log afterwards
    is best-effort: its failures come back as an alert next to the saved entry.
    Validation failures abort before anything is written.
    """

    def __init__(
        self,
        repository: TimetrackerRepository,
        reconciler: Optional[WorklogReconciler] = None,
        classifier: Optional[EntryClassifier] = None,
    ):
        self.repository = repository
        self.reconciler = reconciler or WorklogReconciler(repository, JiraConnectorFactory(repository))
        self.classifier = classifier or EntryClassifier(repository)

    def _load(self, user: User, entry_id: Optional[int]) -> Tuple[TimeEntry, Optional[EntrySnapshot]]:
        if not entry_id:
            return TimeEntry(user_id=user.id), None

        entry = self.repository.load_entry(entry_id)
        if entry is None:
            raise EntryValidationError(f"No entry for id {entry_id}.", 404)
        if entry.user_id != user.id:
            raise EntryValidationError("You are not allowed to edit entries of other users.")
        return entry, EntrySnapshot.from_entry(entry)

    def _mutate(self, user: User, entry: TimeEntry, payload: EntrySaveRequest) -> None:
        project = self.repository.load_project(payload.project_id)
        if project is None:
            raise EntryValidationError(f"Project {payload.project_id} does not exist.")
        if not project.active:
            raise EntryValidationError("This project is inactive and cannot be used for booking.")

        customer = None
        customer_id = payload.customer_id or project.customer_id
        if customer_id:
            customer = self.repository.load_customer(customer_id)
            if customer is None:
                raise EntryValidationError(f"Customer {customer_id} does not exist.")
            if not customer.active:
                raise EntryValidationError("This customer is inactive and cannot be used for booking.")

        activity = None
        if payload.activity_id:
            activity = self.repository.load_activity(payload.activity_id)
            if activity is None:
                raise EntryValidationError(f"Activity {payload.activity_id} does not exist.")

        if payload.start > payload.end:
            raise EntryValidationError("Start time must not be after end time.")

        ticket = payload.ticket
        if user.type == UserType.DEV and activity is not None and activity.needs_ticket and not ticket:
            raise EntryValidationError(f"For the activity '{activity.name}' you must specify a ticket.")
        self._require_valid_ticket(project, ticket)

        ext_ticket = (payload.ext_ticket or "").strip().upper()
        if ext_ticket and not check_ticket_format(ext_ticket):
            raise EntryValidationError("The external ticket's format is not recognized.")

        entry.user_id = user.id
        entry.project = project
        entry.customer = customer
        entry.activity = activity
        entry.ticket = ticket
        entry.internal_ticket_original_key = ext_ticket or None
        entry.description = payload.description or ""
        entry.day = payload.day
        entry.start = payload.start
        entry.end = payload.end
        entry.synced_to_ticketsystem = False
        entry.calc_duration()

    @staticmethod
    def _require_valid_ticket(project: Project, ticket: str) -> None:
        if not ticket:
            return

        if not check_ticket_format(ticket):
            raise EntryValidationError("The ticket's format is not recognized.")

        # Projects without Jira ids accept any ticket
        if not project.jira_id:
            return

        prefix = ticket_prefix(ticket)
        if prefix in project.ticket_prefixes() or project.matches_internal_jira_project(prefix):
            return

        raise EntryValidationError(
            f"The ticket's Jira ID '{prefix}' does not match the project's Jira ID '{project.jira_id}'."
        )

    def _reclassify(self, user_id: int, day, previous: Optional[EntrySnapshot]) -> None:
        self.classifier.reclassify_day(user_id, day)
        if previous is not None and previous.day is not None and previous.day != day:
            self.classifier.reclassify_day(user_id, previous.day)

    async def save_entry(self, user: User, payload: EntrySaveRequest) -> EntrySaveResult:
        entry, previous = self._load(user, payload.id)
        self._mutate(user, entry, payload)

        entry = self.repository.save_entry(entry)
        entry_id, day = entry.id, entry.day
        log.info(f"Saved entry {entry_id} of user {user.username} on {day} ({entry.duration} min, ticket '{entry.ticket}')")

        alert = None
        kind = None
        redirect_url = None
        try:
            await self.reconciler.reconcile(entry, previous)
        except JiraApiError as e:
            kind = sync_error_kind(e)
            redirect_url = e.redirect_url
            alert = explain_alert(AlertCode.WORKLOG_SYNC_FAILED, {"error_detail": e.message})
            log.warning(f"Work-log sync of entry {entry_id} failed ({kind.value}): {e.message}")
        except Exception as e:
            # The local save stands; drop whatever the failed sync left pending
            self.repository.rollback()
            kind = SyncErrorKind.GENERIC
            alert = explain_alert(AlertCode.WORKLOG_SYNC_FAILED, {"error_detail": f"Work-log sync failed: {e}."})
            log.exception(f"Unexpected error syncing the work-log of entry {entry_id}")

        self._reclassify(user.id, day, previous)

        return EntrySaveResult(
            entry=EntrySnapshot.from_entry(self.repository.load_entry(entry_id)),
            alert=alert,
            sync_error=kind,
            redirect_url=redirect_url,
        )

    async def bulk_save(self, user: User, payloads: List[EntrySaveRequest]) -> List[EntrySaveResult]:
        """Saves entries one after another; a validation error stops the batch."""
        results = []
        for payload in payloads:
            results.append(await self.save_entry(user, payload))
        log.info(f"Bulk saved {len(results)} entries for user {user.username}")
        return results

    async def resync_worklogs(self, user: User, ticket_system_id: int, limit: Optional[int] = None) -> WorklogResyncResult:
        """Retries the work-log sync of the user's entries that are not in sync yet."""
        ticket_system = self.repository.load_ticket_system(ticket_system_id)
        if ticket_system is None:
            raise PreconditionError(f"Ticket system {ticket_system_id} does not exist.", 404)
        return await self.reconciler.resync_pending_worklogs(user.id, ticket_system, limit or settings.jira_resync_limit)

    async def delete_entry(self, user: User, entry_id: int) -> EntryDeleteResult:
        entry, _ = self._load(user, entry_id)

        alert = None
        kind = None
        try:
            await self.reconciler.delete_entry_worklog(entry)
        except JiraApiUnauthorizedError as e:
            # The work-log would be orphaned, keep the entry until re-authorized
            log.warning(f"Not deleting entry {entry.id}, ticket system authorization required")
            return EntryDeleteResult(
                success=False,
                alert=explain_alert(AlertCode.REAUTH_REQUIRED, {"error_detail": e.message}),
                sync_error=SyncErrorKind.UNAUTHORIZED,
                redirect_url=e.redirect_url,
            )
        except JiraApiError as e:
            kind = sync_error_kind(e)
            alert = explain_alert(AlertCode.WORKLOG_DELETE_FAILED, {"error_detail": e.message})
            log.warning(f"Work-log deletion of entry {entry.id} failed ({kind.value}): {e.message}")

        day = entry.day
        self.repository.delete_entry(entry)
        log.info(f"Deleted entry {entry_id} of user {user.username} on {day}")

        self.classifier.reclassify_day(user.id, day)
        return EntryDeleteResult(success=True, alert=alert, sync_error=kind)
