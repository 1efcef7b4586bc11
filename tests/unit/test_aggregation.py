"""Unit tests for the aggregation engine."""

from datetime import date

import pytest

from fleetdash.analytics import (
    aggregate_by_month,
    aggregate_by_week,
    aggregate_by_year,
    aggregate_daily_weekly_monthly,
    available_years,
    count_flights_by_vehicle,
    find_unmatched_vehicle_ids,
    group_by_vehicle,
    sort_newest_first,
)
from fleetdash.analytics.partitions import parse_flight_date, week_start_monday, week_start_sunday
from fleetdash.errors import InternalError
from fleetdash.ingestion import normalize
from fleetdash.models import format_ratio, round_half_up


@pytest.fixture
def fleet(upstream):
    return normalize(upstream.flights, upstream.vehicles)


class TestYearlyStats:

    def test_two_flights_one_vehicle(self):
        flights = [
            {'id': 1, 'date': '2024-01-15', 'duration': 3600, 'distance': 1000, 'vehicle': {'id': 5}},
            {'id': 2, 'date': '2024-06-01', 'duration': 1800, 'distance': 500, 'vehicle': {'id': 5}},
        ]
        [stats] = aggregate_by_year(flights)

        assert stats['year'] == 2024
        assert stats['totalFlights'] == 2
        assert stats['totalMinutes'] == 90
        assert stats['totalDistance'] == 1500
        assert stats['uniqueVehicles'] == 1
        assert stats['flightsPerVehicle'] == '2.0'
        assert stats['hoursPerVehicle'] == '1.5'
        assert stats['averageFlightDuration'] == '45.0'
        assert stats['averageDistance'] == '750.0'

    def test_years_sorted_most_recent_first(self, fleet):
        flights, _ = fleet
        assert [s['year'] for s in aggregate_by_year(flights)] == [2025, 2024, 2023]

    def test_sum_matches_dated_flights(self, fleet):
        flights, _ = fleet
        flights = flights + [{'id': 6}, {'id': 7, 'date': 'not a date'}, {'id': 8, 'date': None}]

        stats = aggregate_by_year(flights)
        assert sum(s['totalFlights'] for s in stats) == 5

    def test_missing_duration_and_distance_count_as_zero(self):
        [stats] = aggregate_by_year([{'id': 1, 'date': '2024-03-01', 'vehicle': {'id': 1}}])
        assert stats['totalMinutes'] == 0
        assert stats['totalDistance'] == 0
        assert stats['averageFlightDuration'] == '0.0'

    def test_flight_without_vehicle_does_not_count_as_vehicle(self, fleet):
        flights, _ = fleet
        stats = {s['year']: s for s in aggregate_by_year(flights)}

        # 2025: one flight without vehicle, one flown by vehicle 99
        assert stats[2025]['totalFlights'] == 2
        assert stats[2025]['uniqueVehicles'] == 1

    def test_zero_vehicle_ratios_are_null(self):
        [stats] = aggregate_by_year([{'id': 1, 'date': '2024-03-01', 'duration': 600}])
        assert stats['uniqueVehicles'] == 0
        assert stats['flightsPerVehicle'] is None
        assert stats['hoursPerVehicle'] is None
        assert stats['averageFlightDuration'] == '10.0'

    def test_totals_round_half_up(self):
        # 90 seconds = 1.5 minutes
        [stats] = aggregate_by_year([{'date': '2024-01-01', 'duration': 90, 'distance': 2.5}])
        assert stats['totalMinutes'] == 2
        assert stats['totalDistance'] == 3

    def test_malformed_record_is_internal_error(self):
        with pytest.raises(InternalError):
            aggregate_by_year([None])


class TestMonthlyAndWeeklyStats:

    def test_months_ascending_zero_based(self, fleet):
        flights, _ = fleet
        months = aggregate_by_month(flights, 2024)

        assert [m['month'] for m in months] == [0, 5]
        assert [m['monthName'] for m in months] == ['January', 'June']
        assert months[0]['totalMinutes'] == 60
        assert all(m['year'] == 2024 for m in months)

    def test_other_years_excluded(self, fleet):
        flights, _ = fleet
        assert aggregate_by_month(flights, 2019) == []

    def test_weekly_uses_sunday_weeks(self, fleet):
        flights, _ = fleet
        weeks = aggregate_by_week(flights, 2025)

        # Sunday 2025-02-02 and Monday 2025-02-03 share one Sunday-start week
        assert len(weeks) == 1
        assert weeks[0]['weekStart'] == '2025-02-02'
        assert weeks[0]['totalFlights'] == 2

    def test_weekly_ascending(self, fleet):
        flights, _ = fleet
        starts = [w['weekStart'] for w in aggregate_by_week(flights)]
        assert starts == sorted(starts)
        assert len(starts) == 4

    def test_week_spanning_new_year(self):
        # Wednesday 2025-01-01 falls in the Sunday week starting 2024-12-29
        flights = [{'id': 1, 'date': '2025-01-01T09:00:00', 'duration': 600}]

        [filtered] = aggregate_by_week(flights, 2025)
        assert filtered['weekStart'] == '2024-12-29'
        assert filtered['year'] == 2025

        [unfiltered] = aggregate_by_week(flights)
        assert unfiltered['year'] == 2024

        [rom_week] = aggregate_daily_weekly_monthly(flights)['weekly']
        assert rom_week['weekStart'] == '2024-12-30'
        assert rom_week['year'] == 2024

    def test_available_years(self, fleet):
        flights, _ = fleet
        assert available_years(flights) == [2025, 2024, 2023]


class TestWeekStarts:

    def test_sunday_start(self):
        assert week_start_sunday(date(2025, 2, 2)) == date(2025, 2, 2)
        assert week_start_sunday(date(2025, 2, 3)) == date(2025, 2, 2)
        assert week_start_sunday(date(2025, 2, 8)) == date(2025, 2, 2)

    def test_monday_start(self):
        assert week_start_monday(date(2025, 2, 2)) == date(2025, 1, 27)
        assert week_start_monday(date(2025, 2, 3)) == date(2025, 2, 3)
        assert week_start_monday(date(2025, 2, 9)) == date(2025, 2, 3)


class TestRomRollups:

    def test_daily_weekly_monthly(self, fleet):
        flights, _ = fleet
        rom = aggregate_daily_weekly_monthly(flights)

        assert [d['date'] for d in rom['daily']] == [
            '2023-03-10', '2024-01-15', '2024-06-01', '2025-02-02', '2025-02-03',
        ]
        # Monday-start weeks split the Sunday and Monday flights
        assert [w['weekStart'] for w in rom['weekly'] if w['year'] == 2025] == ['2025-01-27', '2025-02-03']
        assert [m['month'] for m in rom['monthly']] == ['2023-03', '2024-01', '2024-06', '2025-02']

    def test_rows_carry_minutes_and_counts(self, fleet):
        flights, _ = fleet
        rom = aggregate_daily_weekly_monthly(flights)

        february = rom['monthly'][-1]
        assert february['year'] == 2025
        assert february['monthIndex'] == 1
        assert february['flightCount'] == 2
        assert february['totalMinutes'] == 60.0

        sunday = rom['daily'][3]
        assert sunday == {
            'date': '2025-02-02',
            'year': 2025,
            'totalMinutes': 20.0,
            'flightCount': 1,
            'totalDistance': 0,
            'uniqueVehicles': 0,
        }

    def test_empty_input(self):
        assert aggregate_daily_weekly_monthly([]) == {'daily': [], 'weekly': [], 'monthly': []}


class TestVehicleGrouping:

    def test_every_vehicle_has_an_entry(self, fleet):
        flights, vehicles = fleet
        groups = group_by_vehicle(flights, vehicles)

        assert list(groups) == ['5', '42', '7']
        assert groups['7'] == []

    def test_matching_flights_land_in_exactly_one_list(self, fleet):
        flights, vehicles = fleet
        groups = group_by_vehicle(flights, vehicles)

        placed = [f['id'] for group in groups.values() for f in group]
        assert sorted(placed) == [1, 2, 3]
        assert len(placed) == len(set(placed))

    def test_unknown_and_missing_vehicles_are_not_attached(self, fleet):
        flights, vehicles = fleet
        groups = group_by_vehicle(flights, vehicles)

        attached = {f['id'] for group in groups.values() for f in group}
        assert 4 not in attached
        assert 5 not in attached
        assert find_unmatched_vehicle_ids(flights, vehicles) == ['99']

    def test_count_flights_by_vehicle(self, fleet):
        flights, _ = fleet
        assert count_flights_by_vehicle(flights) == {'5': 2, '42': 1, '99': 1}


class TestHelpers:

    def test_sort_newest_first_puts_undated_last(self, fleet):
        flights, _ = fleet
        ordered = sort_newest_first(flights + [{'id': 9}])
        assert [f['id'] for f in ordered] == [5, 4, 2, 1, 3, 9]

    def test_parse_flight_date(self):
        assert parse_flight_date('2024-01-15').year == 2024
        assert parse_flight_date('2024-06-01T12:00:00Z') is not None
        assert parse_flight_date('garbage') is None
        assert parse_flight_date(None) is None

    def test_parse_flight_date_offset_and_fraction_variants(self):
        compact_offset = parse_flight_date('2024-01-15T10:00:00+0000')
        long_fraction = parse_flight_date('2024-01-15T10:00:00.1234567Z')
        short_fraction = parse_flight_date('2024-01-15T10:00:00.5+01:00')

        for moment in (compact_offset, long_fraction, short_fraction):
            assert moment is not None
            assert moment.tzinfo is not None

        assert compact_offset == long_fraction.replace(microsecond=0)

    def test_offset_flights_are_aggregated(self):
        flights = [
            {'id': 1, 'date': '2024-06-15T12:00:00+0000', 'duration': 600},
            {'id': 2, 'date': '2024-06-16T12:00:00.12Z', 'duration': 600},
        ]
        [stats] = aggregate_by_year(flights)
        assert stats['totalFlights'] == 2

    def test_format_ratio(self):
        assert format_ratio(3, 2) == '1.5'
        assert format_ratio(1, 0) is None
        assert format_ratio(0, 0) is None

    def test_round_half_up(self):
        assert round_half_up(0.5) == 1
        assert round_half_up(2.5) == 3
        assert round_half_up(2.49) == 2
