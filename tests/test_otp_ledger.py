"""Tests for the in-memory OTP ledger."""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from candidate_identity.errors import ChallengeError, ChallengeFailure


def _reason(ledger, contact, code):
    with pytest.raises(ChallengeError) as exc_info:
        ledger.consume(contact, code)
    return exc_info.value.reason


def test_correct_code_is_single_use(ledger):
    ledger.put("a@x.com", "123456")

    ledger.consume("a@x.com", "123456")

    assert "a@x.com" not in ledger
    assert _reason(ledger, "a@x.com", "123456") is ChallengeFailure.NOT_FOUND


def test_unknown_contact_is_not_found(ledger):
    assert _reason(ledger, "nobody@x.com", "123456") is ChallengeFailure.NOT_FOUND


def test_wrong_code_keeps_entry_for_retry(ledger):
    ledger.put("a@x.com", "123456")

    assert _reason(ledger, "a@x.com", "654321") is ChallengeFailure.INVALID
    assert _reason(ledger, "a@x.com", "000000") is ChallengeFailure.INVALID

    ledger.consume("a@x.com", "123456")


def test_expired_code_is_purged(ledger, clock):
    ledger.put("a@x.com", "123456")
    clock.advance(600.001)

    assert _reason(ledger, "a@x.com", "123456") is ChallengeFailure.EXPIRED
    assert _reason(ledger, "a@x.com", "123456") is ChallengeFailure.NOT_FOUND


def test_code_valid_right_up_to_expiry(ledger, clock):
    ledger.put("a@x.com", "123456")
    clock.advance(600)

    ledger.consume("a@x.com", "123456")


def test_new_code_replaces_pending_code(ledger):
    ledger.put("14155550100", "111111")
    ledger.put("14155550100", "222222")

    assert len(ledger) == 1
    assert _reason(ledger, "14155550100", "111111") is ChallengeFailure.INVALID
    ledger.consume("14155550100", "222222")


def test_purge_expired_only_drops_stale_entries(ledger, clock):
    ledger.put("old@x.com", "111111")
    clock.advance(300)
    ledger.put("new@x.com", "222222")
    clock.advance(301)

    assert ledger.purge_expired() == 1
    assert "old@x.com" not in ledger
    assert "new@x.com" in ledger


def test_simultaneous_correct_codes_succeed_once(ledger):
    workers = 8
    ledger.put("a@x.com", "123456")
    barrier = threading.Barrier(workers)

    def attempt():
        barrier.wait()
        try:
            ledger.consume("a@x.com", "123456")
        except ChallengeError as exc:
            return exc.reason
        return "ok"

    with ThreadPoolExecutor(max_workers=workers) as pool:
        outcomes = [f.result() for f in [pool.submit(attempt) for _ in range(workers)]]

    assert outcomes.count("ok") == 1
    assert outcomes.count(ChallengeFailure.NOT_FOUND) == workers - 1
