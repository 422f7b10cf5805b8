from dataclasses import dataclass
from enum import Enum


class IntegrationStatus(str, Enum):
    UNAVAILABLE = "unavailable"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class CalendarSyncResult:
    status: IntegrationStatus
    external_event_id: str | None = None
    meeting_link: str | None = None

    @classmethod
    def unavailable(cls) -> "CalendarSyncResult":
        return cls(status=IntegrationStatus.UNAVAILABLE)

    @classmethod
    def failed(cls) -> "CalendarSyncResult":
        return cls(status=IntegrationStatus.FAILED)


@dataclass(frozen=True)
class NotificationReport:
    operator: IntegrationStatus
    attendee: IntegrationStatus
