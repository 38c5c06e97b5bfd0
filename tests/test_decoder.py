import base64
import os

import pytest
from conftest import event_bytes, sample_fields
from solders.pubkey import Pubkey

from stablind.decoding.decoder import DecodedFields, decode_event, decode_program_data, subject_of
from stablind.decoding.registries import make_core_registry, make_full_registry
from stablind.decoding.specs import EventRegistry, find_spec_by_name
from stablind.errors import DecodeError


@pytest.fixture
def registry() -> EventRegistry:
    return make_core_registry()


def _minted_values(**overrides):
    values = {
        "stablecoin": str(Pubkey.new_unique()),
        "minter": str(Pubkey.new_unique()),
        "recipient": str(Pubkey.new_unique()),
        "amount": 1_000_000,
        "total_minted": 5_000_000,
        "timestamp": 1_700_000_000,
    }
    values.update(overrides)
    return values


def test_decode_tokens_minted(registry: EventRegistry) -> None:
    values = _minted_values()
    decoded = decode_event(event_bytes("TokensMinted", values), registry)

    assert decoded == DecodedFields(
        name="TokensMinted",
        fields={
            "stablecoin": values["stablecoin"],
            "minter": values["minter"],
            "recipient": values["recipient"],
            "amount": "1000000",
            "total_minted": "5000000",
            "timestamp": "1700000000",
        },
    )
    assert list(decoded.fields) == [f.name for f in find_spec_by_name(registry, "TokensMinted").fields]


@pytest.mark.parametrize(
    "amount,timestamp",
    [(0, 0), (2**64 - 1, 2**63 - 1), (2**63, -(2**63)), (1, -1)],
)
def test_integer_round_trip_full_range(registry: EventRegistry, amount: int, timestamp: int) -> None:
    values = _minted_values(amount=amount, total_minted=amount, timestamp=timestamp)
    decoded = decode_event(event_bytes("TokensMinted", values), registry)
    assert decoded is not None
    assert int(decoded.fields["amount"]) == amount
    assert int(decoded.fields["timestamp"]) == timestamp


def test_strings_and_bools(registry: EventRegistry) -> None:
    spec = find_spec_by_name(registry, "StablecoinInitialized")
    values = sample_fields(spec, name="Euro Coin ✓", symbol="EURC", is_sss2=False)
    decoded = decode_event(event_bytes("StablecoinInitialized", values), registry)
    assert decoded.fields["name"] == "Euro Coin ✓"
    assert decoded.fields["symbol"] == "EURC"
    assert decoded.fields["is_sss2"] is False


def test_every_registered_event_round_trips() -> None:
    full = make_full_registry()
    for spec in full.values():
        values = sample_fields(spec)
        decoded = decode_event(event_bytes(spec.name, values), full)
        assert decoded is not None and decoded.name == spec.name
        for f in spec.fields:
            expected = values[f.name]
            if f.type in ("u64", "i64", "u8"):
                expected = str(expected)
            assert decoded.fields[f.name] == expected, (spec.name, f.name)


def test_unknown_discriminator_is_unrecognised(registry: EventRegistry) -> None:
    data = b"\xff" * 8 + os.urandom(40)
    assert decode_event(data, registry) is None


@pytest.mark.parametrize("size", [0, 1, 4, 7])
def test_short_buffer_is_unrecognised(registry: EventRegistry, size: int) -> None:
    full = event_bytes("TokensMinted", _minted_values())
    assert decode_event(full[:size], registry) is None


def test_truncated_body_raises(registry: EventRegistry) -> None:
    full = event_bytes("TokensMinted", _minted_values())
    with pytest.raises(DecodeError):
        decode_event(full[:-1], registry)
    with pytest.raises(DecodeError):
        decode_event(full[:8], registry)


def test_trailing_bytes_are_tolerated(registry: EventRegistry) -> None:
    values = _minted_values()
    decoded = decode_event(event_bytes("TokensMinted", values) + b"\x00" * 16, registry)
    assert decoded is not None
    assert decoded.fields["amount"] == "1000000"


def test_governance_events_need_their_registry(registry: EventRegistry) -> None:
    spec = find_spec_by_name(make_full_registry(), "ProposalCreated")
    data = event_bytes("ProposalCreated", sample_fields(spec))
    assert decode_event(data, registry) is None
    assert decode_event(data, make_full_registry()).name == "ProposalCreated"


def test_decode_program_data() -> None:
    values = _minted_values()
    b64 = base64.b64encode(event_bytes("TokensMinted", values)).decode()
    decoded = decode_program_data(b64)
    assert decoded is not None
    assert decoded.fields["recipient"] == values["recipient"]


def test_decode_program_data_rejects_bad_base64() -> None:
    with pytest.raises(DecodeError):
        decode_program_data("not base64 !!")


def test_subject_of() -> None:
    coin = str(Pubkey.new_unique())
    assert subject_of({"stablecoin": coin, "amount": "1"}) == coin
    with pytest.raises(DecodeError):
        subject_of({"amount": "1"})
