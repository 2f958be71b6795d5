from typing import Annotated, Literal

from pydantic import Field

from meetgrid.models.event import CamelModel

Mark = Literal["great", "if_needed", "unavailable"]


class InputGridRequest(CamelModel):
    """A participant painting their own marks over everyone else's."""

    mode: Literal["input"] = "input"
    participant_name: str | None = None


class ViewGridRequest(CamelModel):
    """Read-only group heat map."""

    mode: Literal["view"] = "view"


GridRequest = Annotated[InputGridRequest | ViewGridRequest, Field(discriminator="mode")]


class InputCell(CamelModel):
    slot: str
    label: str
    mark: Mark
    others_count: int


class ViewCell(CamelModel):
    slot: str
    label: str
    great_count: int
    if_needed_count: int
    participants: list[str]
    heat: float


class GridRow(CamelModel):
    hour: int
    half: int
    label: str
    cells: list[InputCell | ViewCell]


class GridView(CamelModel):
    mode: Literal["input", "view"]
    event_id: str
    timezone: str | None = None
    dates: list[str]
    date_labels: list[str]
    total_participants: int
    rows: list[GridRow]
