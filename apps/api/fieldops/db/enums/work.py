"""Job and visit enums."""

from enum import Enum


class WorkStatus(str, Enum):
    """
    Status shared by jobs and technician visits.

    scheduled -> in_progress -> completed, plus cancelled from any
    non-terminal status.
    """

    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


VisitStatus = WorkStatus
JobStatus = WorkStatus


class TimelineEntryType(str, Enum):
    """Item kinds merged into a job timeline."""

    JOB_CREATED = "job_created"
    NOTE = "note"
    VISIT = "visit"
    TIME_ENTRY = "time_entry"
    COST_ENTRY = "cost_entry"
