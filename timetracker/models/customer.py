"""Customer model."""

from sqlalchemy import Column, Integer, String, Boolean
from timetracker.database import Base


class Customer(Base):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    active = Column(Boolean, default=True, nullable=False)

    def __repr__(self):
        return f"<Customer(id={self.id}, name='{self.name}')>"
