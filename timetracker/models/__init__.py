"""Database models."""

from timetracker.models.activity import Activity
from timetracker.models.customer import Customer
from timetracker.models.project import Project
from timetracker.models.ticket_system import TicketSystem
from timetracker.models.time_entry import TimeEntry
from timetracker.models.user import User, UserTicketSystem

__all__ = [
    "Activity",
    "Customer",
    "Project",
    "TicketSystem",
    "TimeEntry",
    "User",
    "UserTicketSystem",
]
