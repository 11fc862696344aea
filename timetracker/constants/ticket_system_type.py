from enum import Enum


class TicketSystemType(str, Enum):
    JIRA = "JIRA"
    OTRS = "OTRS"

    @property
    def supports_time_tracking(self) -> bool:
        """Only Jira accepts work-log bookings."""
        return self is TicketSystemType.JIRA


class UserType(str, Enum):
    DEV = "DEV"
    PL = "PL"
    CTL = "CTL"
