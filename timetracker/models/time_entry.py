"""Time entry model: one logged work interval of one user on one day."""

from sqlalchemy import Column, Integer, String, Date, Time, DateTime, Boolean, Text, ForeignKey, Index
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from timetracker.constants.entry_class import EntryClass
from timetracker.database import Base


class TimeEntry(Base):
    """A user's record of work, optionally mirrored as a Jira work-log."""

    __tablename__ = "entries"

    id = Column(Integer, primary_key=True, index=True)

    # Ownership and booking target
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=True)
    activity_id = Column(Integer, ForeignKey("activities.id"), nullable=True)

    # Temporal information
    day = Column(Date, nullable=False, index=True)
    start = Column(Time, nullable=False)
    end = Column(Time, nullable=False)
    duration = Column(Integer, default=0, nullable=False)  # minutes
    entry_class = Column("class", Integer, default=int(EntryClass.DAYBREAK), nullable=False)

    # Ticket information
    ticket = Column(String(50), default="", nullable=False)
    internal_ticket_original_key = Column(String(50), nullable=True)
    description = Column(Text, default="", nullable=False)

    # Remote work-log state
    worklog_id = Column(String(50), nullable=True)
    synced_to_ticketsystem = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    user = relationship("User")
    project = relationship("Project")
    customer = relationship("Customer")
    activity = relationship("Activity")

    __table_args__ = (
        Index('idx_entries_user_day', 'user_id', 'day'),
    )

    def calc_duration(self) -> "TimeEntry":
        """Recompute ``duration`` in whole minutes from ``start`` and ``end``."""
        if self.start is None or self.end is None:
            self.duration = 0
            return self
        start_minutes = self.start.hour * 60 + self.start.minute
        end_minutes = self.end.hour * 60 + self.end.minute
        self.duration = end_minutes - start_minutes
        return self

    def __repr__(self):
        return f"<TimeEntry(id={self.id}, day={self.day}, ticket='{self.ticket}', minutes={self.duration})>"
