"""Grid rendering for the two grid modes.

The request is a tagged union on ``mode``; this module is the only place
that branches on it. Ranking and tallying stay mode-agnostic.
"""

from collections.abc import Callable

from meetgrid.core.ranking import normalized_scores, tally_slots
from meetgrid.core.slots import Slot, format_date_header, format_hour
from meetgrid.core.timezones import safe_format_slot
from meetgrid.models.event import EventWithAvailability
from meetgrid.models.grid import (
    GridRequest,
    GridRow,
    GridView,
    InputCell,
    InputGridRequest,
    ViewCell,
    ViewGridRequest,
)

CellBuilder = Callable[[str, str], InputCell | ViewCell]


def _input_cells(request: InputGridRequest, event: EventWithAvailability) -> CellBuilder:
    own_great: set[str] = set()
    own_if_needed: set[str] = set()
    others: dict[str, int] = {}
    for a in event.availability:
        if a.participant_name == request.participant_name:
            own_great = set(a.slots)
            own_if_needed = set(a.slots_if_needed) - own_great
            continue
        for key in set(a.slots) | set(a.slots_if_needed):
            others[key] = others.get(key, 0) + 1

    def build(key: str, label: str) -> InputCell:
        if key in own_great:
            mark = "great"
        elif key in own_if_needed:
            mark = "if_needed"
        else:
            mark = "unavailable"
        return InputCell(slot=key, label=label, mark=mark, others_count=others.get(key, 0))

    return build


def _view_cells(event: EventWithAvailability) -> CellBuilder:
    tallies = tally_slots(event)
    heat = normalized_scores(event)

    def build(key: str, label: str) -> ViewCell:
        tally = tallies.get(key)
        if tally is None:
            return ViewCell(slot=key, label=label, great_count=0, if_needed_count=0, participants=[], heat=0.0)
        return ViewCell(
            slot=key,
            label=label,
            great_count=tally.great_count,
            if_needed_count=tally.if_needed_count,
            participants=tally.participants,
            heat=heat.get(key, 0.0),
        )

    return build


def render_grid(
    request: GridRequest,
    event: EventWithAvailability,
    viewer_timezone: str | None = None,
) -> GridView:
    if isinstance(request, InputGridRequest):
        build = _input_cells(request, event)
    elif isinstance(request, ViewGridRequest):
        build = _view_cells(event)
    else:
        raise TypeError(f"unknown grid mode: {request!r}")

    dates = event.sorted_dates
    rows = []
    for hour in range(event.start_hour, event.end_hour):
        for half in (0, 1):
            cells = []
            for d in dates:
                slot = Slot(d, hour, half)
                label = safe_format_slot(slot, event.event_timezone, viewer_timezone)
                cells.append(build(slot.key, label))
            rows.append(GridRow(hour=hour, half=half, label=format_hour(hour) if half == 0 else "", cells=cells))

    return GridView(
        mode=request.mode,
        event_id=event.id,
        timezone=viewer_timezone or event.event_timezone,
        dates=dates,
        date_labels=[format_date_header(d) for d in dates],
        total_participants=len(event.availability),
        rows=rows,
    )
