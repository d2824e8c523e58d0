import io
import json
import logging

import pytest

from issuance import encoding
from issuance import logging as ilog
from issuance.config import DEFAULT_CONTRACT_ADDRESS, IssuanceConfig, is_address, load_config
from issuance.errors import (AlreadyUsed, AuthorizationError, ConfigError,
                             ErrorKind, InvalidArgument, IssuanceError, NotAdmin,
                             NotEnoughLazyMinted, PriceMismatch, ReplayError,
                             SupplyError, Unauthorized, WrongPayment,
                             error_to_record)
from issuance.types import CallContext


# --------------------------------------------------------------------- config


def test_defaults():
    cfg = load_config(env={})
    assert cfg.chain_id == 1337
    assert cfg.contract_address == DEFAULT_CONTRACT_ADDRESS
    assert cfg.hidden_locator == "hidden://"
    assert cfg.platform_fee_bps == 0


def test_env_overrides_and_normalization():
    cfg = load_config(env={
        "ISSUANCE_CHAIN_ID": "7",
        "ISSUANCE_CONTRACT_ADDRESS": "0x" + "AB" * 20,
        "ISSUANCE_HIDDEN_LOCATOR": "ipfs://placeholder",
        "ISSUANCE_MAX_BATCH_SIZE": "50",
        "ISSUANCE_PLATFORM_FEE_BPS": "250",
    })
    assert cfg.chain_id == 7
    assert cfg.contract_address == "0x" + "ab" * 20
    assert cfg.hidden_locator == "ipfs://placeholder"
    assert cfg.max_batch_size == 50
    assert cfg.platform_fee_bps == 250
    assert cfg.with_overrides(chain_id=8).chain_id == 8


@pytest.mark.parametrize(
    "env",
    [
        {"ISSUANCE_CHAIN_ID": "0"},
        {"ISSUANCE_CHAIN_ID": "abc"},
        {"ISSUANCE_PLATFORM_FEE_BPS": "10001"},
        {"ISSUANCE_MAX_BATCH_SIZE": "0"},
        {"ISSUANCE_CONTRACT_ADDRESS": "0x1234"},
    ],
)
def test_invalid_config(env):
    with pytest.raises(ConfigError):
        load_config(env=env)


def test_config_to_dict():
    assert IssuanceConfig().to_dict()["max_batch_size"] == 10_000


def test_call_context_validates_addresses():
    with pytest.raises(InvalidArgument):
        CallContext(sender="alice", origin="alice")
    ctx = CallContext.direct("0x" + "AA" * 20, timestamp=1)
    assert ctx.is_direct and ctx.sender == "0x" + "aa" * 20
    assert not ctx.relayed("0x" + "bb" * 20).is_direct
    assert is_address(ctx.sender) and not is_address("0x" + "AA" * 20)


# --------------------------------------------------------------------- errors


def test_error_hierarchy():
    assert issubclass(Unauthorized, AuthorizationError)
    assert issubclass(AlreadyUsed, ReplayError)
    assert issubclass(NotEnoughLazyMinted, SupplyError)
    assert issubclass(PriceMismatch, WrongPayment)
    assert issubclass(ConfigError, IssuanceError)
    assert AlreadyUsed.kind is ErrorKind.REPLAY


def test_error_payload_is_json_safe():
    err = AlreadyUsed(data={"uid": b"\x01\x02", "n": 3})
    d = err.to_dict()
    assert d["code"] == "REPLAY/ALREADY_USED"
    assert d["terminal"] is True
    assert d["data"] == {"uid": "0x0102", "n": 3}
    json.dumps(d)
    assert error_to_record(err)["status"] == "TERMINAL"
    assert error_to_record(Unauthorized())["status"] == "REJECTED"


def test_error_message_override():
    err = InvalidArgument("bad thing")
    assert err.message == "bad thing"
    assert "VALIDATION/INVALID_ARGUMENT" in str(err)


# ------------------------------------------------------------------- encoding


def test_canonical_encoding_sorts_keys_and_rejects_floats():
    assert encoding.dumps({"b": 1, "a": 2}) == encoding.dumps({"a": 2, "b": 1})
    assert encoding.loads(encoding.dumps([1, b"x", "y", None])) == [1, b"x", "y", None]
    with pytest.raises(encoding.EncodingError):
        encoding.dumps(1.5)
    assert encoding.digest([1], domain=b"a") != encoding.digest([1], domain=b"b")


# -------------------------------------------------------------------- logging


def test_trace_scope_binds_and_restores():
    ilog.clear_context()
    with ilog.trace_scope(op="claim") as tid:
        assert ilog.context()["trace_id"] == tid
        with ilog.trace_scope(op="nested") as inner:
            assert inner == tid
            assert ilog.context()["op"] == "nested"
        assert ilog.context()["op"] == "claim"
    assert ilog.context() == {}


def test_json_formatter_includes_context_and_extras():
    stream = io.StringIO()
    ilog.configure(json=True, level="DEBUG", stream=stream)
    try:
        with ilog.trace_scope(trace_id="t-1", op="reveal"):
            logging.getLogger("issuance.tests").info("hello", extra={"batch_id": 4, "blob": b"\xff"})
        line = json.loads(stream.getvalue().strip().splitlines()[-1])
        assert line["msg"] == "hello"
        assert line["trace_id"] == "t-1"
        assert line["op"] == "reveal"
        assert line["batch_id"] == 4
        assert line["blob"] == "ff"
    finally:
        logging.getLogger("issuance").handlers.clear()


def test_coordinator_logs_rejections(engine, accounts, caplog):
    caplog.set_level(logging.INFO, logger="issuance")
    with pytest.raises(NotAdmin):
        engine.coordinator.set_contract_uri(engine.ctx(accounts.alice), "x")
    rejected = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert rejected and rejected[-1].code == "AUTH/NOT_ADMIN"


@pytest.mark.parametrize("field", ["value", "timestamp"])
def test_call_context_rejects_bool_amounts(field):
    account = "0x" + "aa" * 20
    with pytest.raises(InvalidArgument):
        CallContext(sender=account, origin=account, **{field: True})
