# hackmate/schemas/schedule_schema.py

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator

EventType = Literal["work", "break", "sleep", "meal", "meeting", "presentation"]

# "HH:MM"
_CLOCK = r"^([01]\d|2[0-3]):[0-5]\d$"


class ScheduleEvent(BaseModel):
    event_id: str
    project_id: str
    user_id: str
    title: str
    type: EventType
    start_time: datetime
    end_time: datetime
    description: Optional[str] = None
    reminder_minutes: Optional[int] = None
    completed: bool = False
    created_at: datetime


class ScheduleEventCreate(BaseModel):
    title: str
    type: EventType = "work"
    start_time: datetime
    end_time: datetime
    description: Optional[str] = None
    reminder_minutes: Optional[int] = None
    completed: bool = False

    @model_validator(mode="after")
    def check_order(self):
        if self.end_time < self.start_time:
            raise ValueError("end_time must not be before start_time")
        return self


class ScheduleEventUpdate(BaseModel):
    title: Optional[str] = None
    type: Optional[EventType] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    description: Optional[str] = None
    reminder_minutes: Optional[int] = None
    completed: Optional[bool] = None


class MealTimes(BaseModel):
    breakfast: str = Field("08:00", pattern=_CLOCK)
    lunch: str = Field("13:00", pattern=_CLOCK)
    dinner: str = Field("19:00", pattern=_CLOCK)


class WellnessSettingsSave(BaseModel):
    work_session_duration: int = Field(50, gt=0)  # minutes
    break_duration: int = Field(10, gt=0)  # minutes
    sleep_start_time: str = Field("22:00", pattern=_CLOCK)
    sleep_end_time: str = Field("07:00", pattern=_CLOCK)
    meal_times: MealTimes = MealTimes()
    burnout_prevention: bool = True
    reminder_notifications: bool = True


class WellnessSettings(WellnessSettingsSave):
    user_id: str
    project_id: str
    created_at: datetime
