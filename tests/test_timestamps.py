"""Tests for stored notification timestamps."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from avisos.utils import app_zone, stored_cutoff, stored_now, to_local, to_stored


def test_column_values_round_trip_through_the_app_zone() -> None:
    column_value = datetime(2024, 3, 1, 7, 30)

    local = to_local(column_value)

    assert local.tzinfo == app_zone()
    assert to_stored(local) == column_value
    assert to_local(None) is None and to_stored(None) is None


def test_aware_values_are_converted_before_storing() -> None:
    utc_noon = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)

    # America/Bogota is five hours behind UTC all year.
    assert to_stored(utc_noon) == datetime(2024, 3, 1, 7, 0)


def test_cutoff_is_naive_and_in_the_past() -> None:
    cutoff = stored_cutoff(30)

    assert cutoff.tzinfo is None
    assert stored_now() - cutoff >= timedelta(days=30)
