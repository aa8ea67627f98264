"""Tests for studiogen.core.rate_limiter — admission control.

Tests cover:
- Fixed-window admission and denial.
- Window reset after the reset time passes.
- Independence between identities.
- Atomic check-and-increment under concurrent callers.
- Pruning of expired ledger entries.
- Identity derivation from forwarded headers.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest

from studiogen.core.rate_limiter import (
    UNKNOWN_IDENTITY,
    AdmissionController,
    FixedWindowRateLimiter,
    client_identity,
)


class TestFixedWindow:
    """Ten admissions per identity per hour."""

    def test_first_request_allowed(self, rate_limiter):
        admission = rate_limiter.admit("1.2.3.4")
        assert admission.allowed is True
        assert admission.remaining == 9

    def test_remaining_counts_down(self, rate_limiter):
        remaining = [rate_limiter.admit("1.2.3.4").remaining for _ in range(10)]
        assert remaining == [9, 8, 7, 6, 5, 4, 3, 2, 1, 0]

    def test_eleventh_request_denied(self, rate_limiter):
        for _ in range(10):
            assert rate_limiter.admit("1.2.3.4").allowed
        denied = rate_limiter.admit("1.2.3.4")
        assert denied.allowed is False
        assert denied.remaining == 0

    def test_denial_does_not_increment(self, rate_limiter):
        for _ in range(12):
            rate_limiter.admit("1.2.3.4")
        assert rate_limiter.entry_for("1.2.3.4").count == 10

    def test_requests_across_two_windows_all_admitted(self, rate_limiter, fake_clock):
        """Ten in the first window and one after reset are all allowed."""
        for _ in range(10):
            assert rate_limiter.admit("1.2.3.4").allowed
            fake_clock.advance(60)

        fake_clock.now = rate_limiter.entry_for("1.2.3.4").reset_time + 1
        admission = rate_limiter.admit("1.2.3.4")
        assert admission.allowed is True
        assert admission.remaining == 9

    def test_reset_time_is_still_inside_window(self, rate_limiter, fake_clock):
        for _ in range(10):
            rate_limiter.admit("1.2.3.4")
        fake_clock.advance(3600)
        assert rate_limiter.admit("1.2.3.4").allowed is False

    def test_new_window_starts_at_reset(self, rate_limiter, fake_clock):
        rate_limiter.admit("1.2.3.4")
        fake_clock.advance(5000)
        rate_limiter.admit("1.2.3.4")
        entry = rate_limiter.entry_for("1.2.3.4")
        assert entry.count == 1
        assert entry.reset_time == fake_clock.now + 3600

    def test_identities_are_independent(self, rate_limiter):
        for _ in range(10):
            rate_limiter.admit("1.2.3.4")
        assert rate_limiter.admit("1.2.3.4").allowed is False
        assert rate_limiter.admit("5.6.7.8").allowed is True

    def test_custom_capacity(self, fake_clock):
        limiter = FixedWindowRateLimiter(2, 60, clock=fake_clock)
        assert limiter.admit("a").allowed
        assert limiter.admit("a").allowed
        assert not limiter.admit("a").allowed


class TestConcurrency:
    """Simultaneous callers for one identity cannot exceed capacity."""

    def test_parallel_admissions_capped(self, fake_clock):
        limiter = FixedWindowRateLimiter(10, 3600, clock=fake_clock)
        with ThreadPoolExecutor(max_workers=16) as pool:
            results = list(pool.map(lambda _: limiter.admit("shared"), range(200)))

        assert sum(1 for r in results if r.allowed) == 10
        assert limiter.entry_for("shared").count == 10


class TestPruning:
    """Expired entries are dropped once the ledger is full."""

    def test_expired_entries_pruned_when_full(self, fake_clock):
        limiter = FixedWindowRateLimiter(10, 60, clock=fake_clock, max_entries=2)
        limiter.admit("a")
        limiter.admit("b")
        fake_clock.advance(61)

        limiter.admit("c")

        assert limiter.size == 1
        assert limiter.entry_for("a") is None
        assert limiter.entry_for("c") is not None

    def test_live_entries_kept_when_full(self, fake_clock):
        limiter = FixedWindowRateLimiter(10, 60, clock=fake_clock, max_entries=2)
        limiter.admit("a")
        limiter.admit("b")
        limiter.admit("c")
        assert limiter.size == 3


class TestAdmissionController:
    def test_is_abstract(self):
        with pytest.raises(TypeError):
            AdmissionController()

    def test_limiter_is_controller(self, rate_limiter):
        assert isinstance(rate_limiter, AdmissionController)


class TestClientIdentity:
    """Identity comes from X-Forwarded-For, then X-Real-IP, then 'unknown'."""

    def test_first_forwarded_address(self):
        headers = {"x-forwarded-for": "203.0.113.7, 10.0.0.1, 10.0.0.2"}
        assert client_identity(headers) == "203.0.113.7"

    def test_forwarded_address_trimmed(self):
        assert client_identity({"x-forwarded-for": "  203.0.113.7 ,10.0.0.1"}) == "203.0.113.7"

    def test_forwarded_wins_over_real_ip(self):
        headers = {"x-forwarded-for": "203.0.113.7", "x-real-ip": "198.51.100.1"}
        assert client_identity(headers) == "203.0.113.7"

    def test_real_ip_fallback(self):
        assert client_identity({"x-real-ip": "198.51.100.1"}) == "198.51.100.1"

    def test_blank_forwarded_falls_back(self):
        headers = {"x-forwarded-for": " , 10.0.0.1", "x-real-ip": "198.51.100.1"}
        assert client_identity(headers) == "198.51.100.1"

    def test_unknown_bucket(self):
        assert client_identity({}) == UNKNOWN_IDENTITY == "unknown"
