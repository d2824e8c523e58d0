import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from issuance.config import IssuanceConfig
from issuance.crypto import reveal_cipher
from issuance.errors import (AlreadyRevealed, BadKey, BatchNotFound,
                             InsufficientLazyMinted, NotEncrypted,
                             ValidationError)
from issuance.lazy import BatchLedger, RevealManager
from issuance.state import StateStore, SupplyState

CONFIG = IssuanceConfig(hidden_locator="hidden://", max_batch_size=100)


def _ledger(config: IssuanceConfig = CONFIG) -> BatchLedger:
    store = StateStore()
    return BatchLedger(store, SupplyState(store), config)


def test_register_assigns_contiguous_ranges():
    ledger = _ledger()
    a = ledger.register_batch(10, base_locator="ipfs://a/")
    b = ledger.register_batch(5, base_locator="ipfs://b/")
    assert (a.start, a.end, b.start, b.end) == (0, 10, 10, 15)
    assert ledger.batch_count() == 2
    assert ledger.batch_id_at(1) == 10
    assert [x.batch_id for x in ledger.batches()] == [0, 10]


@pytest.mark.parametrize(
    "amount, base, enc",
    [
        (0, "ipfs://x/", b""),
        (101, "ipfs://x/", b""),
        (1, "", b""),
        (1, "ipfs://x/", b"\x01" * 40),
    ],
)
def test_register_rejects(amount, base, enc):
    ledger = _ledger()
    with pytest.raises(ValidationError):
        ledger.register_batch(amount, base_locator=base, encrypted_locator=enc)
    assert ledger.batch_count() == 0


def test_resolve_plaintext_and_hidden():
    ledger = _ledger()
    ledger.register_batch(3, base_locator="ipfs://a/")
    blob = reveal_cipher.encrypt_locator("ipfs://secret/", "k", 3)
    ledger.register_batch(2, encrypted_locator=blob)
    assert ledger.resolve_locator(0) == "ipfs://a/0"
    assert ledger.resolve_locator(2) == "ipfs://a/2"
    assert ledger.resolve_locator(3) == "hidden://"
    assert ledger.resolve_locator(4) == "hidden://"
    with pytest.raises(BatchNotFound):
        ledger.resolve_locator(5)


def test_locator_override_is_returned_verbatim():
    ledger = _ledger()
    ledger.register_batch(1, base_locator="ipfs://one")
    ledger.set_locator_override(0, "ipfs://one")
    assert ledger.resolve_locator(0) == "ipfs://one"


def test_get_batch_requires_exact_id():
    ledger = _ledger()
    ledger.register_batch(4, base_locator="ipfs://a/")
    assert ledger.get_batch(0).size == 4
    with pytest.raises(BatchNotFound):
        ledger.get_batch(2)


def test_reserve_range_bounded_by_lazy_watermark():
    ledger = _ledger()
    ledger.register_batch(4, base_locator="ipfs://a/")
    assert ledger.reserve_range(3) == 0
    with pytest.raises(InsufficientLazyMinted):
        ledger.reserve_range(2)
    assert ledger.reserve_range(1) == 3


@settings(max_examples=50, deadline=None)
@given(st.lists(st.integers(min_value=1, max_value=20), min_size=1, max_size=12))
def test_each_batch_resolves_exactly_its_identifiers(sizes):
    ledger = _ledger()
    for i, n in enumerate(sizes):
        ledger.register_batch(n, base_locator=f"b{i}/")
    total = sum(sizes)
    start = 0
    for i, n in enumerate(sizes):
        resolved = [ledger.resolve_locator(x) for x in range(start, start + n)]
        assert resolved == [f"b{i}/{k}" for k in range(n)]
        start += n
    with pytest.raises(BatchNotFound):
        ledger.resolve_locator(total)


# --------------------------------------------------------------------- reveal


def _hidden(ledger: BatchLedger, locator: str = "ipfs://real/", key: str = "secret"):
    batch_id = ledger.register_batch(1, base_locator="ipfs://pad/").end
    blob = RevealManager.encrypt_locator(locator, key, batch_id)
    return ledger.register_batch(10, encrypted_locator=blob)


def test_reveal_with_right_key():
    ledger = _ledger()
    batch = _hidden(ledger)
    reveals = RevealManager(ledger)
    assert reveals.is_hidden(batch.batch_id)
    assert reveals.preview(batch.batch_id, "secret") == "ipfs://real/"
    assert reveals.is_hidden(batch.batch_id)
    assert reveals.reveal(batch.batch_id, "secret") == "ipfs://real/"
    stored = ledger.get_batch(batch.batch_id)
    assert stored.is_revealed and not stored.encrypted_locator
    assert ledger.resolve_locator(batch.start + 4) == "ipfs://real/4"


def test_wrong_key_keeps_batch_hidden():
    ledger = _ledger()
    batch = _hidden(ledger)
    reveals = RevealManager(ledger)
    with pytest.raises(BadKey):
        reveals.reveal(batch.batch_id, "not-the-key")
    assert reveals.is_hidden(batch.batch_id)
    assert ledger.resolve_locator(batch.start) == "hidden://"


def test_ciphertext_is_bound_to_batch_id():
    blob = reveal_cipher.encrypt_locator("ipfs://real/", "secret", 5)
    with pytest.raises(BadKey):
        reveal_cipher.decrypt_locator(blob, "secret", 6)
    with pytest.raises(BadKey):
        reveal_cipher.decrypt_locator(blob[:10], "secret", 5)


def test_reveal_state_errors():
    ledger = _ledger()
    plain = ledger.register_batch(2, base_locator="ipfs://p/")
    hidden = _hidden(ledger)
    reveals = RevealManager(ledger)
    with pytest.raises(NotEncrypted):
        reveals.reveal(plain.batch_id, "secret")
    with pytest.raises(BatchNotFound):
        reveals.reveal(999, "secret")
    reveals.reveal(hidden.batch_id, "secret")
    with pytest.raises(AlreadyRevealed):
        reveals.reveal(hidden.batch_id, "secret")
