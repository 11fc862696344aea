"""Ticket system model: one configured remote tracker instance."""

from sqlalchemy import Column, Integer, String, Boolean, Enum
from timetracker.constants.ticket_system_type import TicketSystemType
from timetracker.database import Base


class TicketSystem(Base):
    """Remote tracker configuration. Only Jira systems accept work-logs."""

    __tablename__ = "ticket_systems"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(31), unique=True, nullable=False)
    type = Column(Enum(TicketSystemType, native_enum=False, length=15), nullable=False, default=TicketSystemType.JIRA)
    url = Column(String(255), nullable=False)
    book_time = Column(Boolean, default=False, nullable=False)
    ticket_url = Column(String(255), nullable=True)  # e.g. "https://jira.example.com/browse/%s"

    def supports_worklog_sync(self) -> bool:
        return bool(self.book_time) and TicketSystemType(self.type).supports_time_tracking

    def issue_link(self, ticket: str) -> str:
        if not self.ticket_url:
            return ticket
        return self.ticket_url.replace("%s", ticket)

    def __repr__(self):
        return f"<TicketSystem(id={self.id}, name='{self.name}', type='{self.type}')>"
