import pytest

from kvdict.dict.bitflags import FLAG_NO_VALUE, FLAG_SORT_BY_KEY, has, parse_bitflags
from kvdict.dict.ordering import KeyValuePair, sort_by_key, sort_by_value
from kvdict.dict.protocol import RequestInvalid


def test_parse_and_has():
    flags = parse_bitflags("10")
    assert has(flags, FLAG_SORT_BY_KEY)
    assert has(flags, FLAG_NO_VALUE)
    assert not has(flags, 0x01)


@pytest.mark.parametrize("bad", ["", "-1", "abc", "1.5", " 3", "18446744073709551616"])
def test_parse_rejects_malformed(bad):
    with pytest.raises(RequestInvalid):
        parse_bitflags(bad)


def test_parse_max_uint64():
    assert parse_bitflags("18446744073709551615") == (1 << 64) - 1


def test_sort_by_key():
    pairs = [KeyValuePair("b", "1"), KeyValuePair("a", "2"), KeyValuePair("c", "0")]
    sort_by_key(pairs)
    assert [p.key for p in pairs] == ["a", "b", "c"]


def test_sort_by_value_ties_break_on_key():
    pairs = [KeyValuePair("k2", "v"), KeyValuePair("k1", "v"), KeyValuePair("k0", "w"), KeyValuePair("k9", "a")]
    sort_by_value(pairs)
    assert [(p.key, p.value) for p in pairs] == [("k9", "a"), ("k1", "v"), ("k2", "v"), ("k0", "w")]
