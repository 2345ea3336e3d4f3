import pytest

from mcp_bus_booking.models.seat import MAX_SEATS, SeatSelection
from mcp_bus_booking.services.seat_service import (
    SeatUnavailableError,
    generate_seat_map,
    rows_of,
    seat_id_for,
    toggle_seat,
)
from mcp_bus_booking.utils.config import get_settings


@pytest.mark.parametrize("total", [1, 3, 4, 5, 32, 40, 45])
def test_generates_exactly_n_unique_free_seats(total):
    seats = generate_seat_map(total, set())
    assert len(seats) == total
    assert len({s.id for s in seats}) == total
    assert not any(s.is_occupied for s in seats)
    assert not any(s.is_selected for s in seats)


@pytest.mark.parametrize("total", [0, -1, -40])
def test_non_positive_count_yields_empty_map(total):
    assert generate_seat_map(total, {"A1"}) == []


def test_only_listed_seats_are_occupied():
    seats = generate_seat_map(40, {"A1", "B3"})
    occupied = [s.id for s in seats if s.is_occupied]
    assert occupied == ["A1", "B3"]
    assert sum(1 for s in seats if not s.is_occupied) == 38


def test_unknown_occupied_ids_are_ignored():
    seats = generate_seat_map(4, {"Z9", "a1"})
    assert not any(s.is_occupied for s in seats)


def test_column_positions():
    seats = generate_seat_map(12)
    for row in rows_of(seats):
        assert [s.position for s in row] == ["window", "aisle", "middle", "window"]


def test_partial_last_row():
    seats = generate_seat_map(5, {"A1"})
    assert [s.id for s in seats] == ["A1", "A2", "A3", "A4", "B1"]
    assert seats[0].is_occupied
    assert seats[4].position == "window"
    assert [len(row) for row in rows_of(seats)] == [4, 1]


def test_number_matches_id_and_price_applied():
    seats = generate_seat_map(6, price=85)
    assert all(s.number == s.id for s in seats)
    assert {s.price for s in seats} == {85}


def test_default_price_comes_from_settings(monkeypatch):
    assert generate_seat_map(1)[0].price == 45
    monkeypatch.setattr(get_settings(), "default_seat_price", 30.0)
    assert {s.price for s in generate_seat_map(3)} == {30.0}


def test_largest_map_stops_at_row_z():
    seats = generate_seat_map(MAX_SEATS)
    assert [s.id for s in seats[-4:]] == ["Z1", "Z2", "Z3", "Z4"]


def test_more_seats_than_row_letters_is_rejected():
    with pytest.raises(ValueError):
        generate_seat_map(MAX_SEATS + 1)


def test_seat_id_for():
    assert seat_id_for(0, 0) == "A1"
    assert seat_id_for(1, 2) == "B3"
    assert seat_id_for(9, 3) == "J4"


def test_selection_toggle_adds_and_removes():
    selection = SeatSelection()
    assert selection.toggle("A2") is True
    assert "A2" in selection
    assert selection.toggle("A2") is False
    assert "A2" not in selection
    assert len(selection) == 0


def test_toggle_seat_rejects_occupied_seat():
    seats = generate_seat_map(8, {"A1"})
    selection = SeatSelection()
    with pytest.raises(SeatUnavailableError):
        toggle_seat(selection, seats[0])
    assert len(selection) == 0
    assert toggle_seat(selection, seats[1]) is True
    assert list(selection) == ["A2"]


def test_total_price_sums_per_seat_price():
    seats = generate_seat_map(4, price=45)
    seats[3] = seats[3].model_copy(update={"price": 60})
    selection = SeatSelection(["A1", "A4"])
    assert selection.total_price(seats) == 105


def test_total_price_of_empty_selection():
    assert SeatSelection().total_price(generate_seat_map(4)) == 0
