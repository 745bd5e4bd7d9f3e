from __future__ import annotations

from datetime import date

import pytest

from staybridge.services.availability.errors import (
    InvalidDateFormat,
    InvalidHotelIdFormat,
    InvalidPartyFormat,
)
from staybridge.services.availability.models import RateKey, SelectedRate
from staybridge.services.availability.party_planner import (
    PartyPlanner,
    parse_hotel_id,
    parse_stay,
)


def test_single_room_keeps_children_order() -> None:
    groups = PartyPlanner().plan_single_room(2, "7,5")
    assert len(groups) == 1
    assert groups[0].children_ages == (7, 5)
    assert groups[0].room_count == 1
    assert groups[0].descriptor == '[{"adults":2,"children":[7,5]}]'


def test_adults_only_descriptor_omits_children() -> None:
    (group,) = PartyPlanner().plan(adults=3)
    assert group.descriptor == '[{"adults":3}]'


def test_identical_rooms_collapse_into_one_group() -> None:
    groups = PartyPlanner().plan_rooms(
        '[{"adults":2},{"adults":1,"children":[4]},{"adults":2,"children":[]}]'
    )
    assert [(g.adults, g.children_ages, g.room_count) for g in groups] == [
        (2, (), 2),
        (1, (4,), 1),
    ]


def test_party_json_wins_over_adults() -> None:
    groups = PartyPlanner().plan(adults=4, party_json='[{"adults":1}]')
    assert groups[0].adults == 1


@pytest.mark.parametrize(
    "party",
    [
        "not json",
        "[]",
        '[{"adults":0}]',
        '[{"children":[5]}]',
        '[{"adults":2,"children":[-1]}]',
        '[{"adults":2,"children":"5"}]',
        '["room"]',
    ],
)
def test_malformed_party_is_rejected(party: str) -> None:
    with pytest.raises(InvalidPartyFormat):
        PartyPlanner().plan_rooms(party)


def test_bad_children_csv_is_rejected() -> None:
    with pytest.raises(InvalidPartyFormat):
        PartyPlanner().plan_single_room(2, "five,7")


def test_plan_needs_party_or_adults() -> None:
    with pytest.raises(InvalidPartyFormat):
        PartyPlanner().plan()


def test_plan_from_selection_sums_rooms_per_party() -> None:
    selected = [
        SelectedRate.from_request("R1-2", 2),
        SelectedRate.from_request("R2-2", 1),
        SelectedRate.from_request(None, 1, room_id="R1-2_5"),
    ]
    groups = PartyPlanner().plan_from_selection(selected)
    assert [(g.adults, g.children_ages, g.room_count) for g in groups] == [
        (2, (), 3),
        (2, (5,), 1),
    ]


def test_rate_key_parses_composite_id() -> None:
    key = RateKey.parse("1234-2_5_7")
    assert key.provider_rate_id == "1234"
    assert key.party_key == '[{"adults":2,"children":[5,7]}]'
    assert str(key) == "1234-2_5_7"


def test_rate_key_keeps_dashes_in_provider_id() -> None:
    key = RateKey.parse("ROOM-A-2")
    assert key.provider_rate_id == "ROOM-A"
    assert key.party.adults == 2


@pytest.mark.parametrize("encoded", ["1234", "1234-", "1234-x", "1234-0", "1234-2_x", ""])
def test_rate_key_rejects_bad_suffix(encoded: str) -> None:
    with pytest.raises(InvalidPartyFormat):
        RateKey.parse(encoded)


def test_selected_rate_requires_positive_count() -> None:
    with pytest.raises(InvalidPartyFormat):
        SelectedRate.from_request("R1-2", 0)


def test_parse_stay_accepts_both_formats() -> None:
    assert parse_stay("2026-07-01", "03/07/2026") == (date(2026, 7, 1), date(2026, 7, 3))


@pytest.mark.parametrize(
    ("check_in", "check_out"),
    [("2026-07-03", "2026-07-01"), ("2026-07-01", "2026-07-01"), ("July 1st", "2026-07-03")],
)
def test_parse_stay_rejects_bad_dates(check_in: str, check_out: str) -> None:
    with pytest.raises(InvalidDateFormat):
        parse_stay(check_in, check_out)


def test_parse_hotel_id_splits_on_first_dash() -> None:
    assert parse_hotel_id("1-GRECASTIR") == ("1", "GRECASTIR")
    assert parse_hotel_id("1-ABC-D") == ("1", "ABC-D")


@pytest.mark.parametrize("hotel_id", ["GRECASTIR", "-GRECASTIR", "1-", ""])
def test_parse_hotel_id_rejects_malformed(hotel_id: str) -> None:
    with pytest.raises(InvalidHotelIdFormat):
        parse_hotel_id(hotel_id)
