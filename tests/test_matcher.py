from datetime import datetime, timedelta, timezone

import pytest

from core.flex.matcher import evaluate, find_location, minutes_until_start, rejection_reasons
from core.flex.models import CandidateOffer, Decision, LocationPreference, MatchReason, SearchPreferences

NOW = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)


def _prefs(**overrides):
    loc = {
        "code": "DXN1",
        "name": "West Drayton",
        "min_pay": 5000,
        "min_hourly_pay": 1200,
        "arrival_buffer": 60,
        "min_shift_duration": 2,
        "max_shift_duration": 5,
    }
    loc.update(overrides)
    return SearchPreferences(locations=[LocationPreference(**loc)])


def _offer(code="DXN1", pay=5500, lead_minutes=90, hours=3.5):
    start = NOW + timedelta(minutes=lead_minutes)
    return CandidateOffer(location_code=code, pay=pay, start_time=start, end_time=start + timedelta(hours=hours))


def test_good_offer_is_matched():
    decision = evaluate(_prefs(), _offer(), NOW)
    assert decision.accept is True
    assert decision.reason == MatchReason.MATCHED


def test_supplied_rates_are_used_as_given():
    start = NOW + timedelta(minutes=90)
    offer = CandidateOffer(
        location_code="DXN1",
        pay=5500,
        hourly_rate=1300,
        duration_hours=3.5,
        start_time=start,
        end_time=start + timedelta(hours=3.5),
    )
    assert evaluate(_prefs(), offer, NOW) == Decision(accept=True, reason=MatchReason.MATCHED)
    assert evaluate(_prefs(min_hourly_pay=1301), offer, NOW).reason == MatchReason.HOURLY_RATE_TOO_LOW


def test_offer_starting_too_soon_is_rejected():
    decision = evaluate(_prefs(), _offer(lead_minutes=30), NOW)
    assert decision.accept is False
    assert decision.reason == MatchReason.INSUFFICIENT_LEAD_TIME


def test_unknown_location_is_rejected():
    decision = evaluate(_prefs(), _offer(code="ZZZ9"), NOW)
    assert decision.reason == MatchReason.LOCATION_NOT_CONFIGURED


def test_disabled_location_counts_as_not_configured():
    decision = evaluate(_prefs(enabled=False), _offer(), NOW)
    assert decision.reason == MatchReason.LOCATION_NOT_CONFIGURED


@pytest.mark.parametrize(
    "offer, reason",
    [
        (dict(pay=4900, hours=3), MatchReason.PAY_TOO_LOW),
        (dict(pay=5000, hours=5), MatchReason.HOURLY_RATE_TOO_LOW),
        (dict(pay=9000, hours=6), MatchReason.DURATION_OUT_OF_RANGE),
        (dict(pay=5000, hours=1.5), MatchReason.DURATION_OUT_OF_RANGE),
    ],
)
def test_single_failing_check(offer, reason):
    decision = evaluate(_prefs(), _offer(**offer), NOW)
    assert decision.accept is False
    assert decision.reason == reason


def test_first_failing_check_wins():
    # Low pay, low hourly rate, too long and too soon all at once.
    offer = _offer(pay=1000, hours=8, lead_minutes=5)
    assert evaluate(_prefs(), offer, NOW).reason == MatchReason.PAY_TOO_LOW
    assert rejection_reasons(_prefs(), offer, NOW) == [
        MatchReason.PAY_TOO_LOW,
        MatchReason.HOURLY_RATE_TOO_LOW,
        MatchReason.DURATION_OUT_OF_RANGE,
        MatchReason.INSUFFICIENT_LEAD_TIME,
    ]


def test_bounds_are_inclusive():
    # Exactly minimum pay, exactly minimum hourly rate, exactly max duration, exactly the buffer.
    offer = _offer(pay=6000, hours=5, lead_minutes=60)
    assert evaluate(_prefs(min_pay=6000), offer, NOW).reason == MatchReason.MATCHED
    assert evaluate(_prefs(), _offer(pay=5000, hours=2), NOW).reason == MatchReason.MATCHED


def test_lead_time_uses_fractional_minutes():
    start = NOW + timedelta(minutes=59, seconds=30)
    offer = CandidateOffer(location_code="DXN1", pay=5500, start_time=start, end_time=start + timedelta(hours=3))
    assert minutes_until_start(offer, NOW) == pytest.approx(59.5)
    assert evaluate(_prefs(), offer, NOW).reason == MatchReason.INSUFFICIENT_LEAD_TIME


def test_started_shift_has_negative_lead():
    offer = _offer(lead_minutes=-10)
    assert minutes_until_start(offer, NOW) == pytest.approx(-10)
    assert evaluate(_prefs(arrival_buffer=0), offer, NOW).reason == MatchReason.INSUFFICIENT_LEAD_TIME


def test_evaluate_is_pure():
    prefs, offer = _prefs(), _offer()
    first = evaluate(prefs, offer, NOW)
    second = evaluate(prefs, offer, NOW)
    assert first == second
    assert offer.hourly_rate == 1571


def test_find_location_skips_disabled_duplicates():
    prefs = SearchPreferences(
        locations=[
            LocationPreference(code="DXN1", enabled=False, min_pay=9999),
            LocationPreference(code="DXN1", min_pay=100),
        ]
    )
    assert find_location(prefs, "DXN1").min_pay == 100
    assert find_location(prefs, "DHA2") is None


def test_matching_offer_has_no_rejection_reasons():
    assert rejection_reasons(_prefs(), _offer(), NOW) == []
