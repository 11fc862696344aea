import httpx
import logging
from datetime import datetime, time
from typing import Dict, Any, List, Optional, Type, TypeVar
from zoneinfo import ZoneInfo

from pydantic import BaseModel, ValidationError

from timetracker.connectors.base import BaseTicketSystemConnector
from timetracker.config import settings
from timetracker.exceptions import JiraApiError, JiraApiInvalidResourceError, JiraApiUnauthorizedError
from timetracker.schemas.entry import EntrySnapshot
from timetracker.schemas.jira import JiraIssue, JiraSearchResult, JiraWorklog

log = logging.getLogger(__name__)

API_PATH = "/rest/api/2"
OAUTH_AUTHORIZE_PATH = "/plugins/servlet/oauth/authorize"

ModelT = TypeVar("ModelT", bound=BaseModel)


def worklog_comment(entry: EntrySnapshot) -> str:
    """Work-log comment: ``#<entry id>: <activity>: <description>``."""
    activity = entry.activity_name or "no activity specified"
    description = entry.description or "no description given"
    return f"#{entry.id}: {activity}: {description}"


def worklog_started(entry: EntrySnapshot, tz: Optional[ZoneInfo] = None) -> str:
    """
    Start timestamp in the format Jira expects, e.g. ``2016-02-17T14:35:00.000+0100``.
    Entries are kept in local wall-clock time; the offset is that of ``tz`` on the entry's day.
    """
    start = time(entry.start.hour, entry.start.minute) if entry.start else time(0, 0)
    started = datetime.combine(entry.day, start, tzinfo=tz or ZoneInfo("UTC"))
    return started.strftime("%Y-%m-%dT%H:%M:%S.000%z")


class JiraConnector(BaseTicketSystemConnector):
    """
    Connector for Jira ticket systems (REST API v2).
    Books entries as work-logs, manages internal tickets and walks sub-tickets.

    Config keys:
    - base_url: Jira root URL, e.g. https://jira.example.com
    - access_token: decrypted OAuth access token of the acting user
    - ticket_url: optional issue link pattern used in created issue descriptions
    - transport: optional httpx transport (tests)
    - timezone: IANA zone entries are logged in, defaults to WORKLOG_TIMEZONE
    """

    def __init__(self, config: Dict[str, Any]):
        super().__init__(config)
        self.base_url = self.config["base_url"].strip().rstrip("/")
        self.access_token = self.config["access_token"]  # Already decrypted by JiraConnectorFactory
        self.timezone = ZoneInfo(self.config.get("timezone") or settings.worklog_timezone)
        self.issue_type = self.config.get("issue_type", settings.jira_issue_type)
        self.subticket_search_limit = self.config.get("subticket_search_limit", settings.jira_subticket_search_limit)

        client_kwargs: Dict[str, Any] = {
            "base_url": f"{self.base_url}{API_PATH}",
            "follow_redirects": True,
            "timeout": self.config.get("timeout", settings.jira_request_timeout),
        }
        if self.config.get("transport") is not None:
            client_kwargs["transport"] = self.config["transport"]
        self.client = httpx.AsyncClient(**client_kwargs)
        self.headers = {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

        log.debug(f"Jira connector initialized with base URL: {self.base_url}")

    @property
    def oauth_authorize_url(self) -> str:
        return f"{self.base_url}{OAUTH_AUTHORIZE_PATH}"

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        """
        Helper to make authenticated requests to the Jira API.
        Maps HTTP failures onto the JiraApiError hierarchy:
        - 401 -> JiraApiUnauthorizedError with the re-authorization URL
        - 404 -> JiraApiInvalidResourceError
        - anything else -> JiraApiError
        """
        if not path.startswith("/"):
            path = f"/{path}"

        try:
            log.trace(f"Jira API {method} {self.base_url}{API_PATH}{path}")
            response = await self.client.request(method, path, headers=self.headers, **kwargs)
            log.trace(f"Jira API response: {response.status_code}")
            response.raise_for_status()
            if not response.content:
                return {}
            return response.json()

        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            url = str(e.request.url)

            if status == 401:
                log.warning(f"Jira rejected the access token for {url}")
                raise JiraApiUnauthorizedError(
                    f"401 - Unauthorized. Please authorize: {self.oauth_authorize_url}",
                    redirect_url=self.oauth_authorize_url,
                ) from e

            if status == 404:
                log.info(f"Jira resource not found: {url}")
                raise JiraApiInvalidResourceError(f"404 - Resource is not available: ({path})") from e

            log.error(f"Jira API raw response body: {e.response.text}")
            raise JiraApiError(f"HTTP {status} error for {url}: {e.response.text}", code=status) from e

        except httpx.RequestError as e:
            error_msg = f"request error for {e.request.url}: {str(e)}"
            log.error(f"Jira {error_msg}")
            raise JiraApiError(error_msg) from e

        except ValueError as e:
            raise JiraApiError(f"Unexpected non-JSON response from Jira API for {path}") from e

    @staticmethod
    def _parse(model: Type[ModelT], data: Any, path: str) -> ModelT:
        """Validates a response body, unexpected shapes are API errors."""
        try:
            return model.model_validate(data)
        except ValidationError as e:
            log.error(f"Unexpected Jira response for {path}: {data!r}")
            raise JiraApiError(f"Unexpected response from Jira API for {path}: {e.error_count()} validation errors") from e

    def _worklog_payload(self, entry: EntrySnapshot) -> Dict[str, Any]:
        return {
            "comment": worklog_comment(entry),
            "started": worklog_started(entry, self.timezone),
            "timeSpentSeconds": entry.duration * 60,
        }

    async def get_issue(self, issue_key: str) -> JiraIssue:
        path = f"/issue/{issue_key}"
        data = await self._request("GET", path)
        return self._parse(JiraIssue, data, path)

    async def search_issues(self, jql: str, fields: Optional[List[str]] = None, limit: int = 50) -> List[JiraIssue]:
        # POST supports long queries
        payload: Dict[str, Any] = {"jql": jql, "maxResults": limit}
        if fields:
            payload["fields"] = fields
        data = await self._request("POST", "/search", json=payload)
        result = self._parse(JiraSearchResult, data, "/search")
        log.debug(f"Jira search '{jql}' returned {len(result.issues)} of {result.total} issues")
        return result.issues

    async def create_issue(self, project_key: str, entry: EntrySnapshot, description: Optional[str] = None) -> str:
        payload = {
            "fields": {
                "project": {"key": project_key},
                "summary": entry.ticket,
                "description": description or entry.ticket,
                "issuetype": {"name": self.issue_type},
            }
        }
        data = await self._request("POST", "/issue/", json=payload)
        key = data.get("key") if isinstance(data, dict) else None
        if not key:
            raise JiraApiError(f"Failed to create issue in project {project_key}", code=500)
        log.info(f"Created Jira issue {key} in project {project_key} for ticket {entry.ticket}")
        return key

    async def create_worklog(self, issue_key: str, entry: EntrySnapshot) -> str:
        path = f"/issue/{issue_key}/worklog"
        data = await self._request("POST", path, json=self._worklog_payload(entry))
        worklog = self._parse(JiraWorklog, data, path)
        log.debug(f"Created work-log {worklog.id} on {issue_key} for entry {entry.id}")
        return worklog.id

    async def update_worklog(self, issue_key: str, worklog_id: str, entry: EntrySnapshot) -> str:
        path = f"/issue/{issue_key}/worklog/{worklog_id}"
        data = await self._request("PUT", path, json=self._worklog_payload(entry))
        worklog = self._parse(JiraWorklog, data, path) if data else None
        return worklog.id if worklog else str(worklog_id)

    async def delete_worklog(self, issue_key: str, worklog_id: str) -> bool:
        await self._request("DELETE", f"/issue/{issue_key}/worklog/{worklog_id}")
        log.debug(f"Deleted work-log {worklog_id} on {issue_key}")
        return True

    async def get_subtickets(self, issue_key: str) -> List[str]:
        """
        Returns the sub-task keys of an issue. Epics additionally contribute every
        issue linked to them plus those issues' sub-tasks. A missing issue has none.
        """
        try:
            issue = await self.get_issue(issue_key)
        except JiraApiInvalidResourceError:
            log.warning(f"Main ticket {issue_key} does not exist in Jira, no sub-tickets")
            return []

        subtickets = list(issue.subtask_keys)

        if issue.is_epic:
            linked = await self.search_issues(
                f'"Epic Link" = {issue_key}', ["key", "subtasks"], self.subticket_search_limit
            )
            for linked_issue in linked:
                subtickets.append(linked_issue.key)
                subtickets.extend(linked_issue.subtask_keys)

        log.debug(f"Found {len(subtickets)} sub-tickets below {issue_key}")
        return subtickets

    async def validate_connection(self) -> bool:
        """
        Validates the connection to Jira by fetching the current user.
        """
        try:
            await self._request("GET", "/myself")
            log.info("Jira connection validated successfully")
            return True
        except JiraApiUnauthorizedError:
            raise  # Caller has to redirect to the authorization URL
        except JiraApiError as e:
            log.error(f"Jira connection validation failed: {e}")
            return False

    async def aclose(self) -> None:
        await self.client.aclose()
