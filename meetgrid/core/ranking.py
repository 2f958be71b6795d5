"""Availability aggregation and ranking.

Everything here is a pure function over an ``EventWithAvailability``
snapshot. Empty input degenerates to empty output; nothing raises.
"""

from dataclasses import dataclass, field
from fractions import Fraction

from meetgrid.core.scoring import effective_if_needed_weight, exact_score
from meetgrid.core.slots import iter_slot_keys
from meetgrid.models.event import EventWithAvailability, RankedSlot

DEFAULT_TOP_N = 3


@dataclass
class SlotTally:
    slot: str
    great: list[str] = field(default_factory=list)
    if_needed: list[str] = field(default_factory=list)

    @property
    def great_count(self) -> int:
        return len(self.great)

    @property
    def if_needed_count(self) -> int:
        return len(self.if_needed)

    @property
    def available_count(self) -> int:
        return self.great_count + self.if_needed_count

    @property
    def participants(self) -> list[str]:
        return self.great + self.if_needed


def tally_slots(event: EventWithAvailability) -> dict[str, SlotTally]:
    """Per-slot tallies for every slot in the grid that somebody marked.

    Great wins over if-needed when a participant has both on one slot.
    Marks outside the event's grid are ignored. Keys follow grid order.
    """
    if not event.availability:
        return {}
    marks = []
    for a in event.availability:
        great = set(a.slots)
        marks.append((a.participant_name, great, set(a.slots_if_needed) - great))

    tallies: dict[str, SlotTally] = {}
    for key in iter_slot_keys(event.dates, event.start_hour, event.end_hour):
        tally = SlotTally(slot=key)
        for name, great, if_needed in marks:
            if key in great:
                tally.great.append(name)
            elif key in if_needed:
                tally.if_needed.append(name)
        if tally.available_count:
            tallies[key] = tally
    return tallies


def _sort_key(entry: tuple[Fraction, RankedSlot]) -> tuple:
    exact, ranked = entry
    return (-exact, -ranked.available_count, -ranked.great_count, ranked.slot)


def rank_slots(event: EventWithAvailability) -> list[RankedSlot]:
    """Every marked slot, best first."""
    weight = effective_if_needed_weight(event)
    total = len(event.availability)
    entries = []
    for t in tally_slots(event).values():
        exact = exact_score(t.great_count, t.if_needed_count, weight)
        ranked = RankedSlot(
            slot=t.slot,
            score=float(exact),
            available_count=t.available_count,
            great_count=t.great_count,
            if_needed_count=t.if_needed_count,
            total_participants=total,
        )
        entries.append((exact, ranked))
    entries.sort(key=_sort_key)
    return [ranked for _, ranked in entries]


def compute_ranking(event: EventWithAvailability, top_n: int = DEFAULT_TOP_N) -> list[RankedSlot]:
    if top_n <= 0:
        return []
    return rank_slots(event)[:top_n]


def normalized_scores(event: EventWithAvailability) -> dict[str, float]:
    """Heat position in [0, 1] for every marked slot.

    When all marked slots score the same they are all treated as best (1.0).
    """
    weight = effective_if_needed_weight(event)
    scores = {
        key: exact_score(t.great_count, t.if_needed_count, weight)
        for key, t in tally_slots(event).items()
    }
    if not scores:
        return {}
    lo, hi = min(scores.values()), max(scores.values())
    if hi == lo:
        return {key: 1.0 for key in scores}
    return {key: float((s - lo) / (hi - lo)) for key, s in scores.items()}
