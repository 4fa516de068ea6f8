import pytest

from sdb.util import (
    Snowflake,
    bytes_to_uint64,
    get_logger,
    int32_to_bytes,
    next_ordering_key,
    uint32_to_bytes,
    uint64_to_bytes,
)


def test_uint32_little_endian():
    assert uint32_to_bytes(1) == b"\x01\x00\x00\x00"


def test_int32_negative_matches_unsigned_pattern():
    assert int32_to_bytes(-1) == uint32_to_bytes(0xFFFFFFFF)
    assert len(int32_to_bytes(7)) == 4


@pytest.mark.parametrize("value", [0, 1, 255, 2**32, 2**64 - 1])
def test_uint64_round_trip(value):
    encoded = uint64_to_bytes(value)
    assert len(encoded) == 8
    assert bytes_to_uint64(encoded) == value


def test_bytes_to_uint64_too_short():
    with pytest.raises(ValueError):
        bytes_to_uint64(b"\x01\x02")


def test_out_of_range_values_rejected():
    with pytest.raises(ValueError):
        uint32_to_bytes(-1)
    with pytest.raises(ValueError):
        int32_to_bytes(2**31)
    with pytest.raises(ValueError):
        uint64_to_bytes(2**64)


def test_snowflake_increasing_and_unique():
    gen = Snowflake(3)
    ids = [gen.generate() for _ in range(5000)]
    assert ids == sorted(ids)
    assert len(set(ids)) == len(ids)


def test_snowflake_embeds_node():
    gen = Snowflake(5)
    assert (gen.generate() >> Snowflake.STEP_BITS) & 0x3FF == 5


def test_snowflake_rejects_bad_node():
    with pytest.raises(ValueError):
        Snowflake(1024)
    with pytest.raises(ValueError):
        Snowflake(-1)


def test_next_ordering_key_increases():
    first = next_ordering_key()
    second = next_ordering_key()
    assert second > first


def test_get_logger_writes_prefix(capsys):
    logger = get_logger("unit-test")
    logger.info("hello there")
    out = capsys.readouterr().out
    assert "unit-test:  " in out
    assert "hello there" in out


def test_get_logger_does_not_duplicate_handlers():
    first = get_logger("dup-test")
    second = get_logger("dup-test")
    assert first is second
    assert len(second.handlers) == 1