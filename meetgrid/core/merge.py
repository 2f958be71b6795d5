from collections.abc import Iterable

from meetgrid.models.event import Availability, EventWithAvailability


def _unique(items: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(items))


def normalize_marks(slots: Iterable[str], slots_if_needed: Iterable[str]) -> tuple[list[str], list[str]]:
    """De-duplicate both mark lists and drop if-needed marks that are also great."""
    great = _unique(slots)
    taken = set(great)
    return great, [s for s in _unique(slots_if_needed) if s not in taken]


def merge_availability(
    event: EventWithAvailability,
    participant_name: str,
    slots: Iterable[str],
    slots_if_needed: Iterable[str] = (),
    timezone: str | None = None,
    note: str | None = None,
) -> EventWithAvailability:
    """Replace ``participant_name``'s response with a new one.

    Names match exactly (case-sensitive). The previous entry is dropped as a
    whole, so an omitted timezone or note is not carried over. The input
    event is left untouched.
    """
    great, if_needed = normalize_marks(slots, slots_if_needed)
    entry = Availability(
        participant_name=participant_name,
        timezone=timezone,
        slots=great,
        slots_if_needed=if_needed,
        other_availability_note=note,
    )
    others = [a for a in event.availability if a.participant_name != participant_name]
    return event.model_copy(update={"availability": [*others, entry]})
