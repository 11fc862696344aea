from typing import Dict, List

from pydantic import BaseModel


class SubticketSyncResponse(BaseModel):
    project_id: int
    subtickets: List[str]


class SubticketSyncAllResponse(BaseModel):
    projects: Dict[int, List[str]]
