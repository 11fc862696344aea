"""User model and the per ticket system token pairs."""

from sqlalchemy import Column, Integer, String, Boolean, Text, Enum, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from timetracker.constants.ticket_system_type import UserType
from timetracker.database import Base


class User(Base):
    """A tracking user."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(100), unique=True, nullable=False, index=True)
    type = Column(Enum(UserType, native_enum=False, length=3), default=UserType.DEV, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    ticket_system_tokens = relationship("UserTicketSystem", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}')>"


class UserTicketSystem(Base):
    """OAuth token pair of a user for one ticket system (both encrypted)."""

    __tablename__ = "users_ticket_systems"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    ticket_system_id = Column(Integer, ForeignKey("ticket_systems.id"), nullable=False)
    access_token = Column(Text, nullable=True)  # Encrypted
    token_secret = Column(Text, nullable=True)  # Encrypted
    avoid_connection = Column(Boolean, default=False, nullable=False)

    user = relationship("User", back_populates="ticket_system_tokens")
    ticket_system = relationship("TicketSystem")

    __table_args__ = (
        UniqueConstraint('user_id', 'ticket_system_id', name='uq_user_ticket_system'),
    )

    def __repr__(self):
        return f"<UserTicketSystem(user_id={self.user_id}, ticket_system_id={self.ticket_system_id})>"
