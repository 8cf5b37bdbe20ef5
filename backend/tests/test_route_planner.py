from datetime import date, datetime

from app.models.domain import BudgetLevel, SegmentType
from app.services.route_planner import RoutePlanner
from app.storage import seed

START = date(2026, 7, 20)
END = date(2026, 7, 23)


def test_airport_to_island_route(repository):
    legs = RoutePlanner(repository).calculate_optimal_route(seed.SPLIT_AIRPORT, seed.HVAR, START, END, 2)

    assert [leg.segment_type for leg in legs] == [
        SegmentType.AIRPORT_TRANSFER,
        SegmentType.FERRY,
        SegmentType.ACCOMMODATION,
    ]
    transfer, ferry, stay = legs
    assert transfer.service_id == seed.AIRPORT_TAXI
    assert transfer.to_location_id == seed.SPLIT_PORT
    assert transfer.departure_time == datetime(2026, 7, 20, 0, 0)
    assert transfer.arrival_time == datetime(2026, 7, 20, 0, 30)

    assert ferry.service_id == seed.CAR_FERRY
    assert (ferry.from_location_id, ferry.to_location_id) == (seed.SPLIT_PORT, seed.HVAR)
    assert ferry.arrival_time == datetime(2026, 7, 20, 2, 0)

    assert stay.service_id == seed.HVAR_HOSTEL
    assert stay.from_location_id == seed.HVAR_TOWN
    assert stay.metadata["nights"] == 3
    assert stay.price == 105
    assert sum(leg.price for leg in legs) == 155


def test_budget_changes_the_picks(repository):
    legs = RoutePlanner(repository).calculate_optimal_route(
        seed.SPLIT_AIRPORT, seed.HVAR, START, END, 2, BudgetLevel.LUXURY
    )

    assert legs[1].service_id == seed.CATAMARAN
    assert legs[2].service_id == seed.HVAR_VILLA
    assert legs[2].price == 1350


def test_group_size_filters_stays(repository):
    legs = RoutePlanner(repository).calculate_optimal_route(seed.SPLIT_AIRPORT, seed.HVAR, START, END, 3)

    assert legs[-1].service_id == seed.HVAR_APARTMENT


def test_city_origin_skips_the_transfer(repository):
    legs = RoutePlanner(repository).calculate_optimal_route(seed.SPLIT, seed.HVAR, START, END, 1)

    assert [leg.segment_type for leg in legs] == [SegmentType.FERRY, SegmentType.ACCOMMODATION]
    assert legs[0].from_location_id == seed.SPLIT
    assert legs[0].departure_time == datetime(2026, 7, 20, 0, 0)


def test_unserved_legs_are_skipped(repository):
    planner = RoutePlanner(repository)

    legs = planner.calculate_optimal_route(seed.SPLIT_AIRPORT, seed.BRAC, START, END, 2)

    assert [leg.segment_type for leg in legs] == [SegmentType.AIRPORT_TRANSFER]
    assert planner.calculate_optimal_route("missing", seed.HVAR, START, END) == []


def test_nearest_port_and_descendant_ports(repository):
    planner = RoutePlanner(repository)

    airport = repository.get_location(seed.SPLIT_AIRPORT)
    assert planner.find_nearest_port(airport).id == seed.SPLIT_PORT
    assert planner.descendant_ports(seed.HVAR) == [seed.HVAR_PORT]
    assert planner.descendant_ports(seed.SPLIT_PORT) == [seed.SPLIT_PORT]
    assert planner.descendant_ports(seed.BRAC) == []
