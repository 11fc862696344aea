from typing import Annotated, List, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

# Jira returns ids as strings, some proxies as numbers
JiraId = Annotated[str, BeforeValidator(lambda value: str(value))]


class JiraIssueType(BaseModel):
    name: str = ""

    model_config = ConfigDict(extra="ignore")


class JiraSubtask(BaseModel):
    key: str

    model_config = ConfigDict(extra="ignore")


class JiraIssueFields(BaseModel):
    summary: Optional[str] = None
    issuetype: Optional[JiraIssueType] = None
    subtasks: List[JiraSubtask] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")


class JiraIssue(BaseModel):
    """Subset of a Jira issue as returned by the REST API."""
    id: Optional[JiraId] = None
    key: str
    fields: Optional[JiraIssueFields] = None

    model_config = ConfigDict(extra="ignore")

    @property
    def is_epic(self) -> bool:
        return bool(self.fields and self.fields.issuetype and self.fields.issuetype.name.lower() == "epic")

    @property
    def subtask_keys(self) -> List[str]:
        if not self.fields:
            return []
        return [subtask.key for subtask in self.fields.subtasks]


class JiraSearchResult(BaseModel):
    issues: List[JiraIssue] = Field(default_factory=list)
    total: int = 0

    model_config = ConfigDict(extra="ignore")


class JiraWorklog(BaseModel):
    id: JiraId
    started: Optional[str] = None
    time_spent_seconds: Optional[int] = Field(None, alias="timeSpentSeconds")

    model_config = ConfigDict(extra="ignore", populate_by_name=True)
