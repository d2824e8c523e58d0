import pytest

from issuance.crypto import merkle
from issuance.drop import ClaimConditionBook, effective_terms, evaluate
from issuance.errors import (AllowlistRequired, CurrencyOrPriceMismatch,
                             ExceedsSupplyCap, ExceedsWalletLimit,
                             InvalidArgument, NoActiveCondition, NotStarted,
                             PriceMismatch)
from issuance.state import StateStore
from issuance.types import NATIVE_CURRENCY, AllowlistProof, ClaimCondition

from .conftest import NOW, TOKEN, addr

ALICE = addr("alice")
BOB = addr("bob")
CAROL = addr("carol")


def _eval(cond, **kw):
    args = dict(
        requester=ALICE,
        quantity=1,
        payment=cond.price_per_token,
        proof=None,
        now=NOW,
        claimed_by_wallet=0,
        supply_claimed=0,
        currency=cond.currency,
        price_per_token=cond.price_per_token,
    )
    args.update(kw)
    return evaluate(cond, **args)


# --------------------------------------------------------------------- merkle


def test_merkle_proofs_verify_for_every_member():
    entries = [(addr(f"w{i}"), None, None, None) for i in range(7)]
    root = merkle.root_of(entries)
    for i, e in enumerate(entries):
        assert merkle.verify(root, merkle.leaf_hash(*e), merkle.proof_for(entries, i))


def test_merkle_leaf_binds_overrides():
    entries = [(ALICE, 5, 10, None), (BOB, None, None, None)]
    root = merkle.root_of(entries)
    proof = merkle.proof_for(entries, 0)
    assert merkle.verify(root, merkle.leaf_hash(ALICE, 5, 10, None), proof)
    assert not merkle.verify(root, merkle.leaf_hash(ALICE, 6, 10, None), proof)


def test_merkle_rejects_empty_allowlist():
    with pytest.raises(ValueError):
        merkle.root_of([])


# ------------------------------------------------------------------- evaluate


def test_open_phase_returns_total_price():
    cond = ClaimCondition(start_timestamp=NOW, price_per_token=7, currency=NATIVE_CURRENCY)
    assert _eval(cond, quantity=3, payment=21) == 21


def test_not_started():
    cond = ClaimCondition(start_timestamp=NOW + 1, price_per_token=0, currency=NATIVE_CURRENCY)
    with pytest.raises(NotStarted):
        _eval(cond)


def test_allowlist_required_without_or_with_bad_proof():
    entries = [(BOB, None, None, None), (CAROL, None, None, None)]
    cond = ClaimCondition(start_timestamp=0, price_per_token=0, currency=NATIVE_CURRENCY,
                          allowlist_root=merkle.root_of(entries))
    with pytest.raises(AllowlistRequired):
        _eval(cond)
    with pytest.raises(AllowlistRequired):
        _eval(cond, proof=AllowlistProof(proof=tuple(merkle.proof_for(entries, 0))))
    assert _eval(cond, requester=BOB, proof=AllowlistProof(proof=tuple(merkle.proof_for(entries, 0)))) == 0


def test_allowlist_overrides_price_currency_and_limit():
    entries = [(ALICE, 10, 2, TOKEN), (BOB, None, None, None)]
    cond = ClaimCondition(start_timestamp=0, price_per_token=5, currency=NATIVE_CURRENCY,
                          allowlist_root=merkle.root_of(entries), max_per_wallet=1)
    proof = AllowlistProof(proof=tuple(merkle.proof_for(entries, 0)), quantity_limit=10,
                           price_per_token=2, currency=TOKEN)
    terms = effective_terms(cond, proof)
    assert (terms.price_per_token, terms.currency, terms.max_per_wallet) == (2, TOKEN, 10)
    # non-native: nothing attached, total computed at the override price
    assert _eval(cond, quantity=4, proof=proof, payment=0, currency=TOKEN, price_per_token=2) == 8


def test_declared_terms_must_match_effective_terms():
    cond = ClaimCondition(start_timestamp=0, price_per_token=5, currency=NATIVE_CURRENCY)
    with pytest.raises(CurrencyOrPriceMismatch):
        _eval(cond, price_per_token=4, payment=4)
    with pytest.raises(CurrencyOrPriceMismatch):
        _eval(cond, currency=TOKEN, payment=0)


def test_caps_are_checked_before_declared_terms():
    cond = ClaimCondition(start_timestamp=0, price_per_token=5, currency=NATIVE_CURRENCY, max_per_wallet=1,
                          supply_cap=10)
    with pytest.raises(ExceedsWalletLimit):
        _eval(cond, quantity=2, price_per_token=4, payment=8)
    with pytest.raises(ExceedsSupplyCap):
        _eval(cond, supply_claimed=10, currency=TOKEN, payment=0)


def test_wallet_limit_none_vs_zero():
    unlimited = ClaimCondition(start_timestamp=0, price_per_token=0, currency=NATIVE_CURRENCY)
    assert _eval(unlimited, quantity=1_000, claimed_by_wallet=10**9) == 0
    closed = ClaimCondition(start_timestamp=0, price_per_token=0, currency=NATIVE_CURRENCY, max_per_wallet=0)
    with pytest.raises(ExceedsWalletLimit):
        _eval(closed)


def test_wallet_limit_counts_previous_claims():
    cond = ClaimCondition(start_timestamp=0, price_per_token=0, currency=NATIVE_CURRENCY, max_per_wallet=3)
    assert _eval(cond, quantity=1, claimed_by_wallet=2) == 0
    with pytest.raises(ExceedsWalletLimit):
        _eval(cond, quantity=2, claimed_by_wallet=2)


def test_supply_cap_none_vs_zero():
    closed = ClaimCondition(start_timestamp=0, price_per_token=0, currency=NATIVE_CURRENCY, supply_cap=0)
    with pytest.raises(ExceedsSupplyCap):
        _eval(closed)
    capped = ClaimCondition(start_timestamp=0, price_per_token=0, currency=NATIVE_CURRENCY, supply_cap=5)
    assert _eval(capped, quantity=2, supply_claimed=3) == 0
    with pytest.raises(ExceedsSupplyCap):
        _eval(capped, quantity=3, supply_claimed=3)


def test_native_payment_must_equal_total():
    cond = ClaimCondition(start_timestamp=0, price_per_token=3, currency=NATIVE_CURRENCY)
    with pytest.raises(PriceMismatch):
        _eval(cond, quantity=2, payment=5)
    with pytest.raises(PriceMismatch):
        _eval(cond, quantity=2, payment=7)


def test_non_native_rejects_attached_value():
    cond = ClaimCondition(start_timestamp=0, price_per_token=3, currency=TOKEN)
    with pytest.raises(PriceMismatch):
        _eval(cond, payment=3)
    assert _eval(cond, payment=0) == 3


# ----------------------------------------------------------------------- book


def _phases():
    return [
        ClaimCondition(start_timestamp=100, price_per_token=1, currency=NATIVE_CURRENCY, metadata="presale"),
        ClaimCondition(start_timestamp=200, price_per_token=2, currency=NATIVE_CURRENCY, metadata="public"),
    ]


def test_active_phase_is_last_started():
    book = ClaimConditionBook(StateStore())
    book.set_conditions(_phases())
    assert book.active_index(99) is None
    assert book.active_index(100) == 0
    assert book.active_index(199) == 0
    assert book.active_index(10**10) == 1
    idx, cond = book.for_claim(50)
    assert idx == 0 and cond.metadata == "presale"


def test_no_conditions():
    with pytest.raises(NoActiveCondition):
        ClaimConditionBook(StateStore()).for_claim(NOW)


def test_start_times_must_increase():
    book = ClaimConditionBook(StateStore())
    bad = [_phases()[1], _phases()[0]]
    with pytest.raises(InvalidArgument):
        book.set_conditions(bad)


def test_counters_survive_replacement_unless_reset():
    book = ClaimConditionBook(StateStore())
    book.set_conditions(_phases())
    book.record_claim(0, ALICE, 2)
    book.set_conditions(_phases())
    assert book.claimed_by(ALICE, 0) == 2
    assert book.supply_claimed(0) == 2
    epoch = book.set_conditions(_phases(), reset_eligibility=True)
    assert epoch == 1
    assert book.claimed_by(ALICE, 0) == 0
    assert book.supply_claimed(0) == 0


def test_cap_cannot_drop_below_claimed_without_reset():
    book = ClaimConditionBook(StateStore())
    book.set_conditions(_phases())
    book.record_claim(0, ALICE, 4)
    capped = [ClaimCondition(start_timestamp=100, price_per_token=1, currency=NATIVE_CURRENCY, supply_cap=3)]
    with pytest.raises(InvalidArgument):
        book.set_conditions(capped)
    book.set_conditions(capped, reset_eligibility=True)
