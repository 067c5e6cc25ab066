import threading

import pytest

from geocivic.models.ledger import LedgerReason
from geocivic.services.errors import InsufficientBalance


def test_new_user_has_zero_balance(ledger):
    assert ledger.balance("nobody") == 0
    assert ledger.history("nobody") == []


def test_credit_and_debit(ledger):
    assert ledger.credit("u1", 25, LedgerReason.ISSUE_RESOLVED, report_id="r1") == 25
    assert ledger.credit("u1", 50, LedgerReason.RESOLUTION_VERIFIED, report_id="r1") == 75
    assert ledger.debit("u1", 30, note="bus pass") == 45

    history = ledger.history("u1")
    assert [entry["delta"] for entry in history] == [-30, 50, 25]
    assert history[0]["reason"] == LedgerReason.REWARD_REDEEMED.value
    assert history[0]["note"] == "bus pass"


def test_overdraw_is_refused_and_writes_nothing(ledger):
    ledger.credit("u1", 25, LedgerReason.ISSUE_RESOLVED)

    with pytest.raises(InsufficientBalance) as exc_info:
        ledger.debit("u1", 26)

    assert exc_info.value.balance == 25
    assert ledger.balance("u1") == 25
    assert len(ledger.history("u1")) == 1


def test_debit_of_entire_balance(ledger):
    ledger.credit("u1", 25, LedgerReason.ISSUE_RESOLVED)
    assert ledger.debit("u1", 25) == 0


@pytest.mark.parametrize("amount", [0, -5, 2.5, True])
def test_amounts_must_be_positive_integers(ledger, amount):
    with pytest.raises(ValueError):
        ledger.credit("u1", amount, LedgerReason.ISSUE_RESOLVED)
    with pytest.raises(ValueError):
        ledger.debit("u1", amount)


def test_balances_are_per_user(ledger):
    ledger.credit("u1", 25, LedgerReason.ISSUE_RESOLVED)
    ledger.credit("u2", 50, LedgerReason.RESOLUTION_VERIFIED)
    assert ledger.balance("u1") == 25
    assert ledger.balance("u2") == 50


def test_concurrent_debits_never_overdraw(ledger):
    ledger.credit("u1", 50, LedgerReason.RESOLUTION_VERIFIED)
    barrier = threading.Barrier(4)
    refused = []

    def spend():
        barrier.wait()
        try:
            ledger.debit("u1", 20)
        except InsufficientBalance:
            refused.append(True)

    threads = [threading.Thread(target=spend) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)

    assert len(refused) == 2
    assert ledger.balance("u1") == 10
