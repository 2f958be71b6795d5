import logging
import secrets
import string
from datetime import UTC, date, datetime
from typing import List, Literal, Optional

from fastapi import APIRouter, Query
from pydantic import Field, TypeAdapter, field_validator, model_validator

from meetgrid.config import get_settings
from meetgrid.core.grid import render_grid
from meetgrid.core.merge import merge_availability
from meetgrid.core.ranking import compute_ranking
from meetgrid.core.slots import DATE_RE, is_slot, iter_slot_keys
from meetgrid.core.timezones import (
    InvalidTimezoneError,
    TimezoneOption,
    get_timezone_options,
    get_zone,
    safe_format_slot,
)
from meetgrid.dependencies import Store
from meetgrid.errors import BadRequestError, ExpiredError, NotFoundError, StorageUnavailableError
from meetgrid.models.event import (
    CamelModel,
    EventView,
    EventWithAvailability,
    RankedSlotView,
    RankingResponse,
)
from meetgrid.models.grid import GridRequest, GridView

logger = logging.getLogger("meetgrid.events")
router = APIRouter()

_grid_request = TypeAdapter(GridRequest)


def _generate_event_id(length: int = 10) -> str:
    chars = string.ascii_lowercase + string.digits
    return "".join(secrets.choice(chars) for _ in range(length))


class CreateEventRequest(CamelModel):
    name: str
    dates: List[str]
    start_hour: int = Field(ge=0, le=23)
    end_hour: int = Field(ge=1, le=24)
    event_timezone: Optional[str] = None
    disable_if_needed: bool = False
    if_needed_weight: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    expires_at: Optional[str] = None
    hide_results_until_expiration: bool = False

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        limit = get_settings().limits.name_max_length
        if not v or len(v) > limit:
            raise ValueError(f"name must be 1-{limit} characters")
        return v

    @field_validator("dates")
    @classmethod
    def validate_dates(cls, v: List[str]) -> List[str]:
        if not v:
            raise ValueError("dates must not be empty")
        for d in v:
            if not DATE_RE.match(d):
                raise ValueError(f"invalid date format: {d}")
            date.fromisoformat(d)
        v = sorted(set(v))
        if len(v) > get_settings().limits.max_dates:
            raise ValueError(f"at most {get_settings().limits.max_dates} dates allowed")
        return v

    @field_validator("expires_at")
    @classmethod
    def validate_expires_at(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not DATE_RE.match(v):
            raise ValueError(f"invalid expiry date: {v}")
        if v is not None:
            date.fromisoformat(v)
        return v

    @model_validator(mode="after")
    def validate_hours(self) -> "CreateEventRequest":
        if self.start_hour >= self.end_hour:
            raise ValueError("startHour must be before endHour")
        return self


class AvailabilityRequest(CamelModel):
    participant_name: str
    slots: List[str] = Field(default_factory=list)
    slots_if_needed: List[str] = Field(default_factory=list)
    timezone: Optional[str] = None
    other_availability_note: Optional[str] = None

    @field_validator("participant_name")
    @classmethod
    def validate_participant_name(cls, v: str) -> str:
        v = v.strip()
        limit = get_settings().limits.participant_name_max_length
        if not v or len(v) > limit:
            raise ValueError(f"participantName must be 1-{limit} characters")
        return v

    @field_validator("slots", "slots_if_needed")
    @classmethod
    def validate_slots(cls, v: List[str]) -> List[str]:
        for s in v:
            if not is_slot(s):
                raise ValueError(f"invalid slot format: {s}")
        return v

    @field_validator("other_availability_note")
    @classmethod
    def validate_note(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        if len(v) > get_settings().limits.note_max_length:
            raise ValueError("note is too long")
        return v or None


def _check_timezone(tz: Optional[str]) -> None:
    if tz is None:
        return
    try:
        get_zone(tz)
    except InvalidTimezoneError as e:
        logger.warning("Rejected unknown timezone %r", tz)
        raise BadRequestError(detail=str(e), timezone=tz) from e


async def _load_event(store: Store, event_id: str) -> EventWithAvailability:
    event = await store.load(event_id)
    if event is None:
        logger.warning("Event not found: %s", event_id)
        raise NotFoundError(detail="Event not found", event_id=event_id)
    return event


def _event_view(event: EventWithAvailability) -> EventView:
    hidden = event.results_hidden()
    if hidden:
        event = event.model_copy(update={"availability": []})
    return EventView(event=event, expired=event.is_expired(), results_hidden=hidden)


@router.post(
    "/events",
    status_code=201,
    response_model=EventWithAvailability,
    response_model_exclude_none=True,
)
async def create_event(req: CreateEventRequest, store: Store) -> EventWithAvailability:
    logger.info("POST /events name=%s dates=%d hours=%d-%d", req.name, len(req.dates), req.start_hour, req.end_hour)
    _check_timezone(req.event_timezone)
    created_at = datetime.now(UTC).isoformat()
    for _ in range(10):
        event = EventWithAvailability(
            id=_generate_event_id(),
            created_at=created_at,
            availability=[],
            **req.model_dump(),
        )
        if await store.create(event):
            logger.info("Created event id=%s", event.id)
            return event
        logger.info("Event id collision on %s, regenerating", event.id)
    raise StorageUnavailableError(detail="Failed to generate unique event ID")


@router.get("/events/{event_id}", response_model=EventView, response_model_exclude_none=True)
async def get_event(event_id: str, store: Store) -> EventView:
    logger.info("GET /events/%s", event_id)
    event = await _load_event(store, event_id)
    logger.info("Returning event %s with %d availabilities", event_id, len(event.availability))
    return _event_view(event)


@router.post(
    "/events/{event_id}/availability",
    response_model=EventView,
    response_model_exclude_none=True,
)
async def submit_availability(event_id: str, req: AvailabilityRequest, store: Store) -> EventView:
    logger.info(
        "POST /events/%s/availability participant=%s great=%d if_needed=%d",
        event_id, req.participant_name, len(req.slots), len(req.slots_if_needed),
    )
    event = await _load_event(store, event_id)
    if event.is_expired():
        logger.warning("Rejected submission to expired event %s", event_id)
        raise ExpiredError(event_id=event_id, expires_at=event.expires_at)
    _check_timezone(req.timezone)

    valid_slots = set(iter_slot_keys(event.dates, event.start_hour, event.end_hour))
    for slot in [*req.slots, *req.slots_if_needed]:
        if slot not in valid_slots:
            logger.warning("Invalid slot %s for event %s", slot, event_id)
            raise BadRequestError(detail=f"Invalid slot: {slot}", slot=slot)

    def apply(current: EventWithAvailability) -> EventWithAvailability:
        return merge_availability(
            current,
            req.participant_name,
            req.slots,
            req.slots_if_needed,
            timezone=req.timezone,
            note=req.other_availability_note,
        )

    updated = await store.update(event_id, apply)
    if updated is None:
        raise NotFoundError(detail="Event not found", event_id=event_id)
    logger.info("Stored availability for %s on event %s", req.participant_name, event_id)
    return _event_view(updated)


@router.get("/events/{event_id}/ranking", response_model=RankingResponse)
async def get_ranking(
    event_id: str,
    store: Store,
    top_n: Optional[int] = Query(default=None, ge=0),
    tz: Optional[str] = None,
) -> RankingResponse:
    settings = get_settings().ranking
    n = settings.default_top_n if top_n is None else min(top_n, settings.max_top_n)
    logger.info("GET /events/%s/ranking top_n=%d tz=%s", event_id, n, tz)
    _check_timezone(tz)
    event = await _load_event(store, event_id)
    hidden = event.results_hidden()
    ranked = [] if hidden else compute_ranking(event, n)
    return RankingResponse(
        event_id=event.id,
        timezone=tz or event.event_timezone,
        total_participants=0 if hidden else len(event.availability),
        results_hidden=hidden,
        rankings=[
            RankedSlotView(**r.model_dump(), label=safe_format_slot(r.slot, event.event_timezone, tz))
            for r in ranked
        ],
    )


@router.get("/events/{event_id}/grid", response_model=GridView)
async def get_grid(
    event_id: str,
    store: Store,
    mode: Literal["view", "input"] = "view",
    participant: Optional[str] = None,
    tz: Optional[str] = None,
) -> GridView:
    logger.info("GET /events/%s/grid mode=%s tz=%s", event_id, mode, tz)
    _check_timezone(tz)
    request = _grid_request.validate_python({"mode": mode, "participant_name": participant})
    event = await _load_event(store, event_id)
    if not event.results_hidden():
        return render_grid(request, event, tz)
    own = [a for a in event.availability if mode == "input" and a.participant_name == participant]
    grid = render_grid(request, event.model_copy(update={"availability": own}), tz)
    return grid.model_copy(update={"total_participants": 0})


@router.get("/timezones")
async def list_timezones(current: Optional[str] = None) -> List[TimezoneOption]:
    return get_timezone_options(current)
