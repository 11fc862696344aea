from abc import ABC, abstractmethod
from typing import Dict, Any, List, Optional

from timetracker.schemas.entry import EntrySnapshot
from timetracker.schemas.jira import JiraIssue


class BaseTicketSystemConnector(ABC):
    """Abstract Base Class for ticket system connectors that book work-logs."""

    def __init__(self, config: Dict[str, Any]):
        self.config = config

    @abstractmethod
    async def search_issues(self, jql: str, fields: Optional[List[str]] = None, limit: int = 50) -> List[JiraIssue]:
        """Searches issues with a query and returns at most ``limit`` hits."""
        pass

    @abstractmethod
    async def create_issue(self, project_key: str, entry: EntrySnapshot, description: Optional[str] = None) -> str:
        """Creates an issue named after the entry's ticket and returns the new issue key."""
        pass

    @abstractmethod
    async def create_worklog(self, issue_key: str, entry: EntrySnapshot) -> str:
        """Books an entry as a new work-log and returns the work-log id."""
        pass

    @abstractmethod
    async def update_worklog(self, issue_key: str, worklog_id: str, entry: EntrySnapshot) -> str:
        """Updates an existing work-log from an entry and returns its id."""
        pass

    @abstractmethod
    async def delete_worklog(self, issue_key: str, worklog_id: str) -> bool:
        """Deletes a work-log."""
        pass

    @abstractmethod
    async def get_subtickets(self, issue_key: str) -> List[str]:
        """Returns the keys of all sub-tickets below an issue."""
        pass

    @abstractmethod
    async def validate_connection(self) -> bool:
        """Validates the connection to the external system."""
        pass

    async def aclose(self) -> None:
        """Releases network resources held by the connector."""
        pass
