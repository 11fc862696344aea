from enum import Enum
from typing import Dict


class SyncErrorKind(str, Enum):
    """Kind of a degraded remote sync reported next to a successful local save."""
    UNAUTHORIZED = "UNAUTHORIZED"
    INVALID_RESOURCE = "INVALID_RESOURCE"
    GENERIC = "GENERIC"


class AlertCode(Enum):
    WORKLOG_SYNC_FAILED = "WORKLOG_SYNC_FAILED"
    WORKLOG_DELETE_FAILED = "WORKLOG_DELETE_FAILED"
    REAUTH_REQUIRED = "REAUTH_REQUIRED"
    OTHER = "OTHER"


def explain_alert(code: AlertCode, context: Dict) -> str:
    templates = {
        AlertCode.WORKLOG_SYNC_FAILED: "{error_detail} Dataset was modified in Timetracker anyway",
        AlertCode.WORKLOG_DELETE_FAILED: "{error_detail} Dataset was deleted in Timetracker anyway",
        AlertCode.REAUTH_REQUIRED: "{error_detail} Entry was kept in Timetracker until the ticket system is authorized.",
        AlertCode.OTHER: "Remote sync degraded: {detail}.",
    }
    template = templates.get(code, templates[AlertCode.OTHER])
    return template.format(**{'detail': '', **context})
