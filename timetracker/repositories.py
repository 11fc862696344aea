"""Persistence access for entries, projects and their lookups."""

from datetime import date
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from timetracker.models import Activity, Customer, Project, TicketSystem, TimeEntry, User, UserTicketSystem


class TimetrackerRepository:
    """All reads and writes of the services go through here."""

    def __init__(self, db: Session):
        self.db = db

    # Entries

    def load_entry(self, entry_id: int) -> Optional[TimeEntry]:
        return self.db.query(TimeEntry).filter(TimeEntry.id == entry_id).first()

    def save_entry(self, entry: TimeEntry) -> TimeEntry:
        self.db.add(entry)
        self.db.commit()
        self.db.refresh(entry)
        return entry

    def save_entries(self, entries: List[TimeEntry]) -> None:
        if not entries:
            return
        self.db.add_all(entries)
        self.db.commit()

    def delete_entry(self, entry: TimeEntry) -> None:
        self.db.delete(entry)
        self.db.commit()

    def find_entries_for_user_day(self, user_id: int, day: date) -> List[TimeEntry]:
        """Entries of one user-day, ordered by start time and id."""
        return (
            self.db.query(TimeEntry)
            .filter(TimeEntry.user_id == user_id, TimeEntry.day == day)
            .order_by(TimeEntry.start.asc(), TimeEntry.id.asc())
            .all()
        )

    def find_unsynced_entries(self, user_id: int, ticket_system_id: int, limit: Optional[int] = None) -> List[TimeEntry]:
        """Entries of a user on projects of a ticket system whose work-log is not in sync, newest first."""
        query = (
            self.db.query(TimeEntry)
            .join(Project, TimeEntry.project_id == Project.id)
            .filter(
                TimeEntry.user_id == user_id,
                TimeEntry.synced_to_ticketsystem.is_(False),
                TimeEntry.ticket != "",
                or_(
                    Project.ticket_system_id == ticket_system_id,
                    Project.internal_jira_ticket_system_id == ticket_system_id,
                ),
            )
            .order_by(TimeEntry.day.desc(), TimeEntry.start.desc(), TimeEntry.id.desc())
        )
        if limit:
            query = query.limit(limit)
        return query.all()

    def rollback(self) -> None:
        self.db.rollback()

    # Projects

    def load_project(self, project_id: int) -> Optional[Project]:
        return self.db.query(Project).filter(Project.id == project_id).first()

    def save_project(self, project: Project) -> Project:
        self.db.add(project)
        self.db.commit()
        self.db.refresh(project)
        return project

    def find_projects_with_ticket_system(self) -> List[Project]:
        return (
            self.db.query(Project)
            .filter(Project.ticket_system_id.isnot(None))
            .order_by(Project.id.asc())
            .all()
        )

    # Lookups

    def find_user_by_username(self, username: str) -> Optional[User]:
        return self.db.query(User).filter(User.username == username).first()

    def load_ticket_system(self, ticket_system_id: int) -> Optional[TicketSystem]:
        return self.db.query(TicketSystem).filter(TicketSystem.id == ticket_system_id).first()

    def load_customer(self, customer_id: int) -> Optional[Customer]:
        return self.db.query(Customer).filter(Customer.id == customer_id).first()

    def load_activity(self, activity_id: int) -> Optional[Activity]:
        return self.db.query(Activity).filter(Activity.id == activity_id).first()

    def find_user_ticket_system(self, user_id: int, ticket_system_id: int) -> Optional[UserTicketSystem]:
        return (
            self.db.query(UserTicketSystem)
            .filter(
                UserTicketSystem.user_id == user_id,
                UserTicketSystem.ticket_system_id == ticket_system_id,
            )
            .first()
        )
