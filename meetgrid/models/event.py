import logging
from datetime import UTC, date, datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from meetgrid.core.timezones import InvalidTimezoneError, get_zone

logger = logging.getLogger(__name__)


class CamelModel(BaseModel):
    """Snake_case attributes, camelCase JSON; both spellings accepted on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_record(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Event(CamelModel):
    id: str
    name: str
    dates: list[str]
    start_hour: int = Field(ge=0, le=23)
    end_hour: int = Field(ge=1, le=24)
    event_timezone: str | None = None
    disable_if_needed: bool = False
    if_needed_weight: float | None = Field(default=None, ge=0.0, le=1.0)
    expires_at: str | None = None
    hide_results_until_expiration: bool = False
    created_at: str

    @model_validator(mode="after")
    def check_hour_range(self) -> "Event":
        if self.start_hour >= self.end_hour:
            raise ValueError("startHour must be before endHour")
        return self

    @property
    def sorted_dates(self) -> list[str]:
        return sorted(set(self.dates))

    def today(self, now: datetime | None = None) -> date:
        """Current calendar date in the event zone, or UTC for naive events."""
        now = now or datetime.now(UTC)
        if self.event_timezone:
            try:
                return now.astimezone(get_zone(self.event_timezone)).date()
            except InvalidTimezoneError:
                logger.warning("Event %s has unknown timezone %r, using UTC", self.id, self.event_timezone)
        return now.astimezone(UTC).date()

    def is_expired(self, now: datetime | None = None) -> bool:
        if not self.expires_at:
            return False
        return self.today(now) > date.fromisoformat(self.expires_at[:10])

    def results_hidden(self, now: datetime | None = None) -> bool:
        return bool(
            self.hide_results_until_expiration
            and self.expires_at
            and not self.is_expired(now)
        )


class Availability(CamelModel):
    participant_name: str
    timezone: str | None = None
    slots: list[str] = Field(default_factory=list)
    slots_if_needed: list[str] = Field(default_factory=list)
    other_availability_note: str | None = None


class EventWithAvailability(Event):
    availability: list[Availability] = Field(default_factory=list)

    @property
    def participant_names(self) -> list[str]:
        return [a.participant_name for a in self.availability]


class RankedSlot(CamelModel):
    slot: str
    score: float
    available_count: int
    great_count: int
    if_needed_count: int
    total_participants: int


class RankedSlotView(RankedSlot):
    label: str


class EventView(CamelModel):
    event: EventWithAvailability
    expired: bool
    results_hidden: bool


class RankingResponse(CamelModel):
    event_id: str
    timezone: str | None = None
    total_participants: int
    results_hidden: bool
    rankings: list[RankedSlotView]
