"""Project model, including its ticket system routing and sub-ticket cache."""

from typing import List

from sqlalchemy import Column, Integer, String, Boolean, Text, ForeignKey
from sqlalchemy.orm import relationship
from timetracker.database import Base


class Project(Base):
    """Unit of billable work, optionally linked to a ticket system."""

    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(127), nullable=False)
    active = Column(Boolean, default=True, nullable=False)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=True)

    # Ticket system routing
    ticket_system_id = Column(Integer, ForeignKey("ticket_systems.id"), nullable=True)
    project_lead_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    jira_id = Column(String(63), nullable=True)  # comma-separated ticket prefixes, e.g. "ABC,DEF"
    jira_ticket = Column(Text, nullable=True)  # comma-separated main tickets
    subtickets = Column(Text, nullable=True)  # comma-separated, natural-sorted cache

    # Internal ticket system: auto-managed issues in a separate Jira project
    internal_jira_project_key = Column(String(63), nullable=True)
    internal_jira_ticket_system_id = Column(Integer, ForeignKey("ticket_systems.id"), nullable=True)

    # Relationships
    customer = relationship("Customer")
    ticket_system = relationship("TicketSystem", foreign_keys=[ticket_system_id])
    internal_jira_ticket_system = relationship("TicketSystem", foreign_keys=[internal_jira_ticket_system_id])
    project_lead = relationship("User", foreign_keys=[project_lead_id])

    def has_internal_jira_project_key(self) -> bool:
        return bool(self.internal_jira_project_key) and self.internal_jira_ticket_system_id is not None

    def internal_jira_project_keys(self) -> List[str]:
        if not self.has_internal_jira_project_key():
            return []
        return [key.strip() for key in self.internal_jira_project_key.split(",") if key.strip()]

    def matches_internal_jira_project(self, prefix: str) -> bool:
        """Whether a ticket prefix belongs to the internal Jira project(s)."""
        return prefix in self.internal_jira_project_keys()

    def ticket_prefixes(self) -> List[str]:
        return [prefix.strip() for prefix in (self.jira_id or "").split(",") if prefix.strip()]

    def main_tickets(self) -> List[str]:
        return [ticket.strip() for ticket in (self.jira_ticket or "").split(",") if ticket.strip()]

    def __repr__(self):
        return f"<Project(id={self.id}, name='{self.name}', active={self.active})>"
