import logging
from typing import Any, Dict, Optional, Type

from timetracker.connectors.base import BaseTicketSystemConnector
from timetracker.connectors.jira_connector import JiraConnector
from timetracker.constants.ticket_system_type import TicketSystemType
from timetracker.exceptions import PreconditionError
from timetracker.models import TicketSystem
from timetracker.repositories import TimetrackerRepository
from timetracker.utils.encrypt import decrypt_token

log = logging.getLogger(__name__)

CONNECTOR_TYPES: Dict[TicketSystemType, Type[BaseTicketSystemConnector]] = {
    TicketSystemType.JIRA: JiraConnector,
}


class JiraConnectorFactory:
    """Builds a connector acting on behalf of one user on one ticket system."""

    def __init__(self, repository: TimetrackerRepository, extra_config: Optional[Dict[str, Any]] = None):
        self.repository = repository
        self.extra_config = extra_config or {}

    def is_connection_avoided(self, user_id: int, ticket_system: TicketSystem) -> bool:
        """Users can opt out of remote bookings per ticket system."""
        user_ticket_system = self.repository.find_user_ticket_system(user_id, ticket_system.id)
        return bool(user_ticket_system and user_ticket_system.avoid_connection)

    def create(self, user_id: int, ticket_system: TicketSystem) -> BaseTicketSystemConnector:
        connector_class = CONNECTOR_TYPES.get(TicketSystemType(ticket_system.type))
        if not connector_class:
            raise PreconditionError(
                f"Ticket system {ticket_system.name} of type {ticket_system.type} does not support work-logs",
                400,
            )

        user_ticket_system = self.repository.find_user_ticket_system(user_id, ticket_system.id)
        access_token = decrypt_token(user_ticket_system.access_token) if user_ticket_system else None
        if not access_token:
            raise PreconditionError(
                f"User {user_id} has no access token for ticket system {ticket_system.name}",
                400,
            )

        config = {
            "base_url": str(ticket_system.url),
            "access_token": access_token,
            "ticket_url": ticket_system.ticket_url,
            **self.extra_config,
        }
        log.debug(f"Creating {connector_class.__name__} for user {user_id} on {ticket_system.name}")
        return connector_class(config)
