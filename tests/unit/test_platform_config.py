from decimal import Decimal

from salonbook.platform_config import service as platform_config


def test_fee_percentage_from_rows(monkeypatch):
    monkeypatch.setattr(
        platform_config.repository,
        "fetch_public_configs",
        lambda: [{"key": "convenience_fee_percentage", "value": "12.5"}, {"key": "max_booking_advance_days", "value": 14}],
    )
    assert platform_config.get_fee_percentage() == Decimal("12.5")
    assert platform_config.get_advance_booking_window_days() == 14


def test_absent_fee_refetches_then_returns_none(monkeypatch):
    calls = []

    def _fetch():
        calls.append(1)
        return []
    monkeypatch.setattr(platform_config.repository, "fetch_public_configs", _fetch)
    assert platform_config.get_fee_percentage() is None
    assert len(calls) == 2


def test_cache_is_reused_within_ttl(monkeypatch):
    calls = []

    def _fetch():
        calls.append(1)
        return [{"key": "convenience_fee_percentage", "value": 10}]
    monkeypatch.setattr(platform_config.repository, "fetch_public_configs", _fetch)
    platform_config.get_fee_percentage()
    platform_config.get_fee_percentage()
    assert len(calls) == 1
    platform_config.invalidate()
    platform_config.get_fee_percentage()
    assert len(calls) == 2


def test_window_defaults_when_absent_or_invalid(monkeypatch):
    platform_config.prime({"configs": {"max_booking_advance_days": "abc"}})
    assert platform_config.get_advance_booking_window_days() == 21
    platform_config.prime({"max_booking_advance_days": 0})
    assert platform_config.get_advance_booking_window_days() == 21


def test_invalid_fee_value_is_none():
    platform_config.prime({"convenience_fee_percentage": "dix"})
    assert platform_config.get_fee_percentage() is None
