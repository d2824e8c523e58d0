from dataclasses import replace

import pytest

from issuance.crypto import signing
from issuance.crypto.signing import SigningKey
from issuance.errors import InvalidSignature


def _recover(req, sig, config):
    return signing.recover_signer(req, sig, contract_address=config.contract_address, chain_id=config.chain_id)


def test_sign_bytes_are_deterministic(mint_request, config):
    req = mint_request()
    a = signing.sign_bytes(req, contract_address=config.contract_address, chain_id=config.chain_id)
    b = signing.sign_bytes(req, contract_address=config.contract_address, chain_id=config.chain_id)
    assert a == b


def test_sign_bytes_are_injective_over_fields(mint_request, config):
    req = mint_request()
    base = signing.sign_bytes(req, contract_address=config.contract_address, chain_id=config.chain_id)
    variants = [
        replace(req, quantity=req.quantity + 1),
        replace(req, locator=req.locator + "x"),
        replace(req, price_per_token=1),
        replace(req, validity_end=req.validity_end + 1),
        replace(req, uid=bytes(16)),
        replace(req, primary_sale_recipient="0x" + "99" * 20),
    ]
    for v in variants:
        assert signing.sign_bytes(v, contract_address=config.contract_address, chain_id=config.chain_id) != base
    assert signing.sign_bytes(req, contract_address=config.contract_address, chain_id=config.chain_id + 1) != base
    assert signing.sign_bytes(req, contract_address="0x" + "ab" * 20, chain_id=config.chain_id) != base


def test_recover_returns_signer_address(mint_request, sign, signer_key, config):
    req = mint_request()
    assert _recover(req, sign(req), config) == signer_key.address


def test_tampered_request_fails(mint_request, sign, config):
    req = mint_request()
    sig = sign(req)
    with pytest.raises(InvalidSignature):
        _recover(replace(req, quantity=99), sig, config)


def test_swapped_pubkey_fails(mint_request, sign, rogue_key, config):
    req = mint_request()
    sig = sign(req)
    forged = rogue_key.public_bytes + sig[32:]
    with pytest.raises(InvalidSignature):
        _recover(req, forged, config)


@pytest.mark.parametrize("sig", [b"", b"\x00" * 95, b"\x00" * 97])
def test_malformed_envelope(mint_request, config, sig):
    with pytest.raises(InvalidSignature):
        _recover(mint_request(), sig, config)


def test_try_recover_returns_none(mint_request, config):
    assert signing.try_recover(mint_request(), b"\x00" * 96, contract_address=config.contract_address,
                               chain_id=config.chain_id) is None


def test_keys_from_labels_are_stable():
    assert SigningKey.from_label("a").address == SigningKey.from_label("a").address
    assert SigningKey.from_label("a").address != SigningKey.from_label("b").address
    assert len(SigningKey.generate().public_bytes) == 32


def test_request_hash_is_32_bytes(mint_request, config):
    h = signing.request_hash(mint_request(), contract_address=config.contract_address, chain_id=config.chain_id)
    assert len(h) == 32


SMALL_ORDER_ENCODINGS = [
    bytes(32),
    b"\x01" + bytes(31),
    bytes.fromhex("ecffffffffffffffffffffffffffffffffffffffffffffffffffffffffffff7f"),
    bytes.fromhex("edffffffffffffffffffffffffffffffffffffffffffffffffffffffffffff7f"),
    bytes.fromhex("eeffffffffffffffffffffffffffffffffffffffffffffffffffffffffffff7f"),
    bytes.fromhex("26e8958fc2b227b045c3f489f2ef98f0d5dfac05d3c63339b13802886d53fc05"),
    bytes.fromhex("c7176a703d4dd84fba3c0b760d10670f2a2053fa2c39ccc64ec7fd7792ac037a"),
    bytes.fromhex("26e8958fc2b227b045c3f489f2ef98f0d5dfac05d3c63339b13802886d53fc85"),
]


@pytest.mark.parametrize("point", SMALL_ORDER_ENCODINGS)
def test_small_order_points_are_weak(point):
    assert signing.is_weak_point(point)


def test_real_keys_are_not_weak(signer_key, rogue_key, mint_request, sign):
    assert not signing.is_weak_point(signer_key.public_bytes)
    assert not signing.is_weak_point(rogue_key.public_bytes)
    assert not signing.is_weak_point(sign(mint_request())[32:64])


@pytest.mark.parametrize("point", SMALL_ORDER_ENCODINGS)
def test_keyless_envelopes_never_verify(mint_request, config, point):
    # a bare curve check accepts these for some share of messages
    for uid in range(64):
        req = mint_request(uid=uid.to_bytes(16, "big"))
        for envelope in (point + bytes(64), point + point + bytes(32)):
            with pytest.raises(InvalidSignature):
                _recover(req, envelope, config)


def test_weak_r_with_real_key_is_rejected(mint_request, sign, config):
    req = mint_request()
    sig = sign(req)
    with pytest.raises(InvalidSignature):
        _recover(req, sig[:32] + bytes(32) + sig[64:], config)
