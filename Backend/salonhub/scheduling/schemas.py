import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..models import AppointmentStatus, PaidStatus


class ScheduleAppointmentRequest(BaseModel):
    client_id: str = Field(min_length=1, description="Client code, e.g. CL001 (case-insensitive)")
    service_id: int
    employee_id: int
    # Either a combined local timestamp or separate date + time
    appointment_date_time: Optional[str] = None
    date: Optional[str] = Field(default=None, description="YYYY-MM-DD in business time")
    time: Optional[str] = Field(default=None, description="HH:MM in business time")
    note: Optional[str] = None
    paid_status: PaidStatus = PaidStatus.UNPAID

    @field_validator("client_id")
    @classmethod
    def strip_client_code(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("client_id must not be blank")
        return value

    def selected_time(self) -> str:
        """The time exactly as the caller sent it."""
        if self.appointment_date_time:
            return self.appointment_date_time
        return f"{self.date} {self.time}"


class UpdateAppointmentRequest(BaseModel):
    employee_id: Optional[int] = None
    service_id: Optional[int] = None
    appointment_date_time: Optional[str] = None
    date: Optional[str] = None
    time: Optional[str] = None
    note: Optional[str] = None
    paid_status: Optional[PaidStatus] = None
    status: Optional[AppointmentStatus] = None

    def changes_time(self) -> bool:
        return bool(self.appointment_date_time or self.date or self.time)


class AppointmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    company_id: int
    appointment_code: str
    client_id: int
    client_code: str
    employee_id: int
    service_id: int
    start_at_utc: datetime
    expires_at_utc: datetime
    display_time: str
    note: Optional[str] = None
    paid_status: PaidStatus
    status: AppointmentStatus
    is_trashed: bool
    created_at: datetime
    updated_at: datetime


class ScheduledAppointmentOut(BaseModel):
    appointment: AppointmentOut
    selected_time: str
    appointment_date: str  # YYYY-MM-DD in business time


class AppointmentListItem(AppointmentOut):
    # Business-local "YYYY-MM-DD HH:MM"
    expires_at: str
    client_name: Optional[str] = None
    employee_name: Optional[str] = None
    service_name: Optional[str] = None


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int


class AppointmentListOut(BaseModel):
    items: list[AppointmentListItem]
    pagination: Optional[Pagination] = None


class AppointmentStatsOut(BaseModel):
    upcoming: int = 0
    ongoing: int = 0
    completed: int = 0
    cancelled: int = 0
    total: int = 0
