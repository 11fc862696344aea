from typing import Optional
import logging

from timetracker.connectors.base import BaseTicketSystemConnector
from timetracker.connectors.factory import JiraConnectorFactory
from timetracker.connectors.jira_connector import OAUTH_AUTHORIZE_PATH
from timetracker.exceptions import JiraApiError, JiraApiInvalidResourceError, JiraApiUnauthorizedError, PreconditionError
from timetracker.models import Project, TicketSystem, TimeEntry
from timetracker.repositories import TimetrackerRepository
from timetracker.schemas.entry import EntrySnapshot, WorklogResyncResult
from timetracker.utils.ticket import ticket_prefix

log = logging.getLogger(__name__)


def jql_string(value: str) -> str:
    """Escapes a value for use inside a double-quoted JQL string."""
    return value.replace("\\", "\\\\").replace('"', '\\"')


class WorklogReconciler:
    """
    Mirrors a locally saved entry into the Jira work-log of its ticket.

    Runs after the local commit. Remote failures propagate to the caller,
    which decides whether they are fatal.
    """

    def __init__(self, repository: TimetrackerRepository, connector_factory: JiraConnectorFactory):
        self.repository = repository
        self.connector_factory = connector_factory

    def resolve_ticket_system(self, project: Optional[Project]) -> Optional[TicketSystem]:
        """The internal ticket system wins over the project's own one."""
        if project is None:
            return None
        if project.has_internal_jira_project_key():
            return project.internal_jira_ticket_system
        return project.ticket_system

    def _is_bookable(self, ticket_system: Optional[TicketSystem], user_id: int) -> bool:
        if ticket_system is None:
            return False
        if not ticket_system.supports_worklog_sync():
            log.debug(f"Ticket system {ticket_system.name} does not book time, skipping work-log sync")
            return False
        if self.connector_factory.is_connection_avoided(user_id, ticket_system):
            log.debug(f"User {user_id} avoids connections to {ticket_system.name}, skipping work-log sync")
            return False
        return True

    def _connector_for(self, user_id: int, ticket_system: TicketSystem) -> BaseTicketSystemConnector:
        try:
            return self.connector_factory.create(user_id, ticket_system)
        except PreconditionError as e:
            # Without a token the user has to authorize first
            raise JiraApiUnauthorizedError(
                f"{e.message}. Please authorize Timetracker in {ticket_system.name}",
                redirect_url=f"{str(ticket_system.url).rstrip('/')}{OAUTH_AUTHORIZE_PATH}",
            ) from e

    @staticmethod
    def should_delete_previous_worklog(entry: TimeEntry, previous: Optional[EntrySnapshot]) -> bool:
        """
        A stale work-log has to go when the entry moved to another ticket.
        Rewriting a ticket to its own canonical internal key is not a move.
        """
        if previous is None:
            return False
        different_tickets = (previous.ticket or "") != (entry.ticket or "")
        is_original_ticket = entry.internal_ticket_original_key == entry.ticket
        return different_tickets and not is_original_ticket

    async def reconcile(self, entry: TimeEntry, previous: Optional[EntrySnapshot]) -> None:
        project = entry.project
        ticket_system = self.resolve_ticket_system(project)
        if not self._is_bookable(ticket_system, entry.user_id):
            return

        connector = self._connector_for(entry.user_id, ticket_system)
        try:
            if project.has_internal_jira_project_key():
                await self.resolve_internal_ticket(entry, ticket_system, connector)

            if self.should_delete_previous_worklog(entry, previous):
                log.info(f"Entry {entry.id} moved from {previous.ticket} to {entry.ticket}, deleting old work-log")
                await self._delete_worklog(connector, previous.ticket, previous.worklog_id)
                entry.worklog_id = None
                entry.synced_to_ticketsystem = False

            await self.update_or_create_worklog(entry, connector)
        finally:
            self.repository.save_entry(entry)
            await connector.aclose()

    async def resolve_internal_ticket(
        self,
        entry: TimeEntry,
        ticket_system: TicketSystem,
        connector: BaseTicketSystemConnector,
    ) -> Optional[str]:
        """
        Maps the entry onto an issue of the project's internal Jira project,
        creating that issue on first use.
        """
        project = entry.project
        identifier = entry.internal_ticket_original_key or entry.ticket
        if not identifier:
            return None

        project_key = project.internal_jira_project_keys()[0]

        if project.matches_internal_jira_project(ticket_prefix(identifier)):
            issue_key = identifier
        else:
            issues = await connector.search_issues(
                f'project = {project_key} AND summary ~ "{jql_string(identifier)}"', ["key", "summary"], 1
            )
            issues = [issue for issue in issues if project.matches_internal_jira_project(ticket_prefix(issue.key))]
            if issues:
                issue_key = issues[0].key
                log.debug(f"Found internal issue {issue_key} for {identifier}")
            else:
                snapshot = EntrySnapshot.from_entry(entry).model_copy(update={"ticket": identifier})
                link = project.ticket_system.issue_link(identifier) if project.ticket_system else identifier
                issue_key = await connector.create_issue(project_key, snapshot, link)
                log.info(f"Created internal issue {issue_key} for {identifier} on {ticket_system.name}")

        entry.ticket = issue_key
        entry.internal_ticket_original_key = issue_key
        return issue_key

    async def update_or_create_worklog(self, entry: TimeEntry, connector: BaseTicketSystemConnector) -> Optional[str]:
        if not entry.ticket:
            return None

        if not entry.duration:
            # Jira refuses empty work-logs, drop a leftover one instead
            if entry.worklog_id:
                await self._delete_worklog(connector, entry.ticket, entry.worklog_id)
            entry.worklog_id = None
            entry.synced_to_ticketsystem = False
            return None

        snapshot = EntrySnapshot.from_entry(entry)
        if entry.worklog_id:
            try:
                worklog_id = await connector.update_worklog(entry.ticket, entry.worklog_id, snapshot)
            except JiraApiInvalidResourceError:
                log.warning(f"Work-log {entry.worklog_id} on {entry.ticket} vanished, creating a new one")
                worklog_id = await connector.create_worklog(entry.ticket, snapshot)
        else:
            worklog_id = await connector.create_worklog(entry.ticket, snapshot)

        entry.worklog_id = str(worklog_id)
        entry.synced_to_ticketsystem = True
        log.debug(f"Entry {entry.id} booked as work-log {worklog_id} on {entry.ticket}")
        return entry.worklog_id

    async def resync_pending_worklogs(
        self,
        user_id: int,
        ticket_system: TicketSystem,
        limit: Optional[int] = None,
    ) -> WorklogResyncResult:
        """
        Books the not yet synced entries of a user on one ticket system, newest first.

        A failing entry is logged and counted, the run goes on with the next one.
        An unauthorized token stops the run.
        """
        result = WorklogResyncResult(ticket_system_id=ticket_system.id)
        if not self._is_bookable(ticket_system, user_id):
            return result

        entries = self.repository.find_unsynced_entries(user_id, ticket_system.id, limit)
        if not entries:
            return result

        connector = self._connector_for(user_id, ticket_system)
        try:
            for entry in entries:
                resolved = self.resolve_ticket_system(entry.project)
                if resolved is None or resolved.id != ticket_system.id:
                    # Booked through the project's internal ticket system instead
                    result.skipped.append(entry.id)
                    continue

                try:
                    if entry.project.has_internal_jira_project_key():
                        await self.resolve_internal_ticket(entry, ticket_system, connector)
                    await self.update_or_create_worklog(entry, connector)
                    self.repository.save_entry(entry)
                except JiraApiUnauthorizedError:
                    raise
                except JiraApiError as e:
                    log.warning(f"Re-sync of entry {entry.id} failed: {e.message}")
                    self.repository.rollback()
                    result.failed.append(entry.id)
                    continue
                except Exception:
                    log.exception(f"Unexpected error re-syncing entry {entry.id}")
                    self.repository.rollback()
                    result.failed.append(entry.id)
                    continue

                if entry.synced_to_ticketsystem:
                    result.synced.append(entry.id)
                else:
                    result.skipped.append(entry.id)
        finally:
            await connector.aclose()

        log.info(
            f"Re-synced work-logs of user {user_id} on {ticket_system.name}: "
            f"{len(result.synced)} synced, {len(result.skipped)} skipped, {len(result.failed)} failed"
        )
        return result

    async def delete_entry_worklog(self, entry: TimeEntry) -> None:
        """Removes the work-log of an entry that is about to be deleted."""
        if not entry.ticket or not entry.worklog_id:
            return

        ticket_system = self.resolve_ticket_system(entry.project)
        if not self._is_bookable(ticket_system, entry.user_id):
            return

        connector = self._connector_for(entry.user_id, ticket_system)
        try:
            await self._delete_worklog(connector, entry.ticket, entry.worklog_id)
        finally:
            await connector.aclose()
        entry.worklog_id = None
        entry.synced_to_ticketsystem = False

    async def _delete_worklog(self, connector: BaseTicketSystemConnector, ticket: str, worklog_id: Optional[str]) -> None:
        if not ticket or not worklog_id:
            return
        try:
            await connector.delete_worklog(ticket, worklog_id)
        except JiraApiInvalidResourceError:
            log.info(f"Work-log {worklog_id} on {ticket} already gone")
