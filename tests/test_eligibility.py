"""Tests for delivery window eligibility.

Tests cover:
- Preferred time parsing and the 08:00 fallback
- Timezone resolution and the UTC fallback
- Window matching, including the midnight wraparound
- is_eligible short-circuits (already sent, inactive, no channels)
"""

import pytest
from datetime import datetime, time, timedelta, timezone
from uuid import uuid4

from devotion_notify.models.preference import RecipientPreference
from devotion_notify.services.eligibility import (
    DEFAULT_PREFERRED_TIME,
    hour_distance,
    is_eligible,
    local_time,
    parse_preferred_time,
    resolve_timezone,
    within_delivery_window,
)


# ============================================================================
# Preferred Time Parsing Tests
# ============================================================================

class TestParsePreferredTime:
    """Tests for parse_preferred_time."""

    def test_parses_hours_and_minutes(self):
        assert parse_preferred_time("09:30") == time(9, 30)

    def test_parses_seconds_suffix(self):
        """Postgres TIME columns come back as HH:MM:SS."""
        assert parse_preferred_time("21:15:00") == time(21, 15)

    def test_hour_only(self):
        assert parse_preferred_time("7") == time(7, 0)

    @pytest.mark.parametrize("value", [None, "", "banana", "25:00", "12:75", "ab:cd"])
    def test_malformed_falls_back_to_eight(self, value):
        """Missing or malformed values use 08:00."""
        assert parse_preferred_time(value) == DEFAULT_PREFERRED_TIME
        assert DEFAULT_PREFERRED_TIME == time(8, 0)

    def test_custom_default(self):
        assert parse_preferred_time("nope", default=time(6, 0)) == time(6, 0)


# ============================================================================
# Timezone Tests
# ============================================================================

class TestTimezones:
    """Tests for timezone resolution and local time projection."""

    def test_known_zone(self):
        assert resolve_timezone("Asia/Tokyo").key == "Asia/Tokyo"

    @pytest.mark.parametrize("name", [None, "", "Mars/Olympus_Mons"])
    def test_unknown_zone_falls_back_to_utc(self, name):
        assert resolve_timezone(name).key == "UTC"

    def test_local_time_projection(self):
        now = datetime(2026, 10, 18, 0, 5, tzinfo=timezone.utc)
        local = local_time(now, "Asia/Tokyo")

        assert (local.hour, local.minute) == (9, 5)

    def test_naive_now_treated_as_utc(self):
        local = local_time(datetime(2026, 10, 18, 0, 5), "Asia/Tokyo")
        assert (local.hour, local.minute) == (9, 5)


# ============================================================================
# Window Tests
# ============================================================================

class TestDeliveryWindow:
    """Tests for the 15 minute delivery window."""

    def test_hour_distance_wraps_midnight(self):
        local = datetime(2026, 10, 18, 23, 55, tzinfo=timezone.utc)
        assert hour_distance(local, time(0, 5)) == pytest.approx(10 / 60)

    def test_utc_plus_nine_scenario(self):
        """09:00 preferred in UTC+9, invoked at 00:05 UTC (09:05 local)."""
        pref = make_pref(timezone_name="Asia/Tokyo", preferred_time="09:00")
        now = datetime(2026, 10, 18, 0, 5, tzinfo=timezone.utc)

        assert within_delivery_window(now, pref)
        assert is_eligible(now, pref, already_sent_today=False)

    def test_outside_window(self):
        pref = make_pref(timezone_name="Asia/Tokyo", preferred_time="09:00")
        now = datetime(2026, 10, 18, 0, 20, tzinfo=timezone.utc)

        assert not within_delivery_window(now, pref)

    def test_window_edges(self):
        """Eligible iff |local - preferred| <= 15 minutes."""
        pref = make_pref(timezone_name="UTC", preferred_time="12:00")
        noon = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)

        for offset in range(-60, 61):
            now = noon + timedelta(minutes=offset)
            assert within_delivery_window(now, pref) == (abs(offset) <= 15), offset

    def test_window_across_midnight(self):
        pref = make_pref(timezone_name="UTC", preferred_time="00:00")

        assert within_delivery_window(datetime(2026, 10, 17, 23, 50, tzinfo=timezone.utc), pref)
        assert within_delivery_window(datetime(2026, 10, 18, 0, 10, tzinfo=timezone.utc), pref)
        assert not within_delivery_window(datetime(2026, 10, 17, 23, 40, tzinfo=timezone.utc), pref)

    def test_malformed_time_uses_eight_oclock(self):
        pref = make_pref(timezone_name="UTC", preferred_time="not-a-time")

        assert within_delivery_window(datetime(2026, 10, 18, 8, 5, tzinfo=timezone.utc), pref)
        assert not within_delivery_window(datetime(2026, 10, 18, 9, 0, tzinfo=timezone.utc), pref)

    def test_custom_window(self):
        pref = make_pref(timezone_name="UTC", preferred_time="12:00")
        now = datetime(2026, 10, 18, 12, 25, tzinfo=timezone.utc)

        assert not within_delivery_window(now, pref)
        assert within_delivery_window(now, pref, window_hours=0.5)


# ============================================================================
# is_eligible Tests
# ============================================================================

class TestIsEligible:
    """Tests for the combined eligibility decision."""

    NOW = datetime(2026, 10, 18, 8, 0, tzinfo=timezone.utc)

    def test_eligible_recipient(self):
        assert is_eligible(self.NOW, make_pref(), already_sent_today=False)

    def test_already_sent_today(self):
        assert not is_eligible(self.NOW, make_pref(), already_sent_today=True)

    def test_inactive(self):
        assert not is_eligible(self.NOW, make_pref(is_active=False), already_sent_today=False)

    def test_no_channels_enabled(self):
        pref = make_pref(push_enabled=False, email_enabled=False)
        assert not is_eligible(self.NOW, pref, already_sent_today=False)

    def test_email_only(self):
        pref = make_pref(push_enabled=False, email_enabled=True)
        assert is_eligible(self.NOW, pref, already_sent_today=False)


# ============================================================================
# Helpers
# ============================================================================

def make_pref(
    timezone_name: str = "UTC",
    preferred_time: str | None = "08:00",
    push_enabled: bool = True,
    email_enabled: bool = False,
    is_active: bool = True,
) -> RecipientPreference:
    return RecipientPreference(
        user_id=uuid4(),
        timezone=timezone_name,
        preferred_time=preferred_time,
        push_enabled=push_enabled,
        email_enabled=email_enabled,
        is_active=is_active,
    )
