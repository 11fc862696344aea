import logging
import re
from typing import Dict, List, Union

from timetracker.connectors.factory import JiraConnectorFactory
from timetracker.exceptions import JiraApiUnauthorizedError, PreconditionError
from timetracker.models import Project
from timetracker.repositories import TimetrackerRepository
from timetracker.utils.encrypt import decrypt_token

log = logging.getLogger(__name__)

_DIGITS = re.compile(r"(\d+)")


def natural_sort_key(value: str) -> List[Union[int, str]]:
    """Case-insensitive natural order: ABC-2 sorts before abc-10."""
    return [int(part) if part.isdigit() else part.lower() for part in _DIGITS.split(value)]


class SubticketSyncService:
    """
    Caches the flattened list of a project's main tickets and their sub-tickets
    in ``Project.subtickets``, so entries can be matched against them locally.
    """

    def __init__(self, repository: TimetrackerRepository, connector_factory: JiraConnectorFactory):
        self.repository = repository
        self.connector_factory = connector_factory

    async def sync_project_subtickets(self, project_or_id: Union[int, Project]) -> List[str]:
        if isinstance(project_or_id, Project):
            project = project_or_id
        else:
            project = self.repository.load_project(project_or_id)

        if project is None:
            raise PreconditionError("Project does not exist", 404)

        ticket_system = project.ticket_system
        if ticket_system is None:
            raise PreconditionError("No ticket system configured for project", 400)

        main_tickets = project.main_tickets()
        if not main_tickets:
            if project.subtickets:
                project.subtickets = ""
                self.repository.save_project(project)
                log.info(f"Cleared sub-ticket cache of project {project.name}")
            return []

        lead = project.project_lead
        if lead is None:
            raise PreconditionError(f"Project has no lead user: {project.name}", 400)

        user_ticket_system = self.repository.find_user_ticket_system(lead.id, ticket_system.id)
        if user_ticket_system is None or not decrypt_token(user_ticket_system.access_token):
            raise PreconditionError(
                f"Project user has no token for ticket system: {lead.username}@{project.name}", 400
            )

        connector = self.connector_factory.create(lead.id, ticket_system)
        subtickets: List[str] = []
        try:
            for main_ticket in main_tickets:
                # The main ticket itself is matchable as well
                subtickets.append(main_ticket)
                subtickets.extend(await connector.get_subtickets(main_ticket))
        finally:
            await connector.aclose()

        subtickets.sort(key=natural_sort_key)

        project.subtickets = ",".join(subtickets)
        self.repository.save_project(project)
        log.info(f"Stored {len(subtickets)} sub-tickets for project {project.name}")
        return subtickets

    async def sync_all_project_subtickets(self) -> Dict[int, List[str]]:
        """Syncs every project that has a ticket system configured."""
        projects = self.repository.find_projects_with_ticket_system()
        log.info(f"Found {len(projects)} projects with ticket system")

        results: Dict[int, List[str]] = {}
        for project in projects:
            log.debug(f"Syncing {project.id} {project.name}")
            try:
                results[project.id] = await self.sync_project_subtickets(project)
            except JiraApiUnauthorizedError as e:
                raise JiraApiUnauthorizedError(
                    f"{e.message} - project {project.name}", e.code, e.redirect_url
                ) from e
        return results
