import pytest

from meetgrid.core.slots import (
    Slot,
    format_date_header,
    format_hour,
    format_time,
    is_slot,
    iter_slot_keys,
    iter_slots,
    slot_key,
    slot_label,
)


class TestSlotCodec:
    def test_slot_key_pads_hour(self):
        assert slot_key("2025-03-15", 9, 0) == "2025-03-15T09:00"
        assert slot_key("2025-03-15", 14, 1) == "2025-03-15T14:30"

    def test_parse(self):
        slot = Slot.parse("2025-03-15T09:30")
        assert slot == Slot("2025-03-15", 9, 1)
        assert slot.minute == 30
        assert slot.key == "2025-03-15T09:30"

    @pytest.mark.parametrize(
        "key",
        ["2025-03-15T24:00", "2025-03-15T09:15", "2025-02-30T09:00", "2025-03-15 09:00", "", "2025-03-15T9:00"],
    )
    def test_parse_rejects_malformed(self, key):
        with pytest.raises(ValueError):
            Slot.parse(key)
        assert is_slot(key) is False


class TestSlotUniverse:
    def test_dates_sorted_and_deduplicated(self):
        keys = list(iter_slot_keys(["2025-03-16", "2025-03-15", "2025-03-16"], 9, 10))
        assert keys == [
            "2025-03-15T09:00",
            "2025-03-15T09:30",
            "2025-03-16T09:00",
            "2025-03-16T09:30",
        ]

    def test_half_open_hour_range(self):
        slots = list(iter_slots(["2025-03-15"], 22, 24))
        assert len(slots) == 4
        assert slots[-1] == Slot("2025-03-15", 23, 1)

    def test_no_dates(self):
        assert list(iter_slots([], 9, 17)) == []


class TestLabels:
    @pytest.mark.parametrize("hour,expected", [(0, "12 AM"), (9, "9 AM"), (12, "12 PM"), (13, "1 PM"), (23, "11 PM")])
    def test_format_hour(self, hour, expected):
        assert format_hour(hour) == expected

    def test_format_time(self):
        assert format_time(0, 30) == "12:30 AM"
        assert format_time(17, 0) == "5:00 PM"

    def test_format_date_header(self):
        assert format_date_header("2025-03-15") == "Sat, Mar 15"
        assert format_date_header("2025-03-03") == "Mon, Mar 3"

    def test_slot_label(self):
        assert slot_label("2025-03-15T09:30") == "Sat, Mar 15, 9:30 AM"
