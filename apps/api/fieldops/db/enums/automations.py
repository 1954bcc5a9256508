"""Automation-related enums."""

from enum import Enum


class AutomationType(str, Enum):
    """Kinds of deferred automation work."""

    ESTIMATE_FOLLOWUP = "estimate_followup"
    INVOICE_FOLLOWUP = "invoice_followup"
    JOB_CLOSEOUT = "job_closeout"
    REVIEW_REQUEST = "review_request"
    LEAD_RESPONSE = "lead_response"

    @classmethod
    def has_value(cls, value: str) -> bool:
        return value in cls._value2member_map_


class AutomationStatus(str, Enum):
    """
    Work item lifecycle.

    pending -> processing -> completed | failed
    """

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @classmethod
    def terminal(cls) -> frozenset["AutomationStatus"]:
        return frozenset({cls.COMPLETED, cls.FAILED})


# Settings toggle that gates each automation type
AUTOMATION_SETTING_KEYS: dict[AutomationType, str] = {
    AutomationType.ESTIMATE_FOLLOWUP: "estimate_followups",
    AutomationType.INVOICE_FOLLOWUP: "invoice_followups",
    AutomationType.JOB_CLOSEOUT: "job_closeout",
    AutomationType.REVIEW_REQUEST: "review_requests",
    AutomationType.LEAD_RESPONSE: "lead_response",
}
