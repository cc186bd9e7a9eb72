import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from jsonl_docstore import encode, decode, CorruptRecordError, InvalidRecordError
from jsonl_docstore.codec import split_marker

json_scalars = st.one_of(
    st.none(),
    st.booleans(),
    st.integers(min_value=-(2 ** 53), max_value=2 ** 53),
    st.floats(allow_nan=False, allow_infinity=False),
    st.text(max_size=40),
)
record_strategy = st.dictionaries(
    keys=st.text(min_size=1, max_size=12),
    values=st.one_of(json_scalars, st.lists(json_scalars, max_size=5)),
    max_size=8,
)


@given(record=record_strategy)
@settings(max_examples=100)
def test_decode_inverts_encode(record):
    assert decode(encode(record)) == record


def test_encode_layout():
    line = encode({"b": 2, "a": "x"})
    assert line == 'E{"a":"x","b":2}'
    assert "\n" not in encode({"s": "multi\nline"})

def test_encode_is_independent_of_key_order():
    assert encode({"a": 1, "b": [1, 2]}) == encode({"b": [1, 2], "a": 1})

def test_encode_keeps_non_ascii():
    assert encode({"city": "Wien ö"}) == 'E{"city":"Wien ö"}'

def test_encode_deleted_marker():
    assert encode({"a": 1}, marker="D") == 'D{"a":1}'
    with pytest.raises(ValueError):
        encode({"a": 1}, marker="X")

@pytest.mark.parametrize("bad", [[1, 2], "text", 3, None])
def test_encode_rejects_non_objects(bad):
    with pytest.raises(InvalidRecordError):
        encode(bad)

def test_encode_rejects_unserializable():
    with pytest.raises(InvalidRecordError):
        encode({"when": object()})
    with pytest.raises(InvalidRecordError):
        encode({"x": float("nan")})

def test_decode_ignores_marker_state():
    assert decode('D{"a":1}') == {"a": 1}

@pytest.mark.parametrize("line", ['', 'X{"a":1}', '{"a":1}', 'E{"a":', 'E[1,2]', 'E'])
def test_decode_malformed(line):
    with pytest.raises(CorruptRecordError):
        decode(line)

def test_split_marker():
    assert split_marker('E{"a":1}') == ("E", '{"a":1}')

@pytest.mark.parametrize("bad", [{1: "x"}, {"nested": {2: "y"}}, {"items": [{None: 1}]}])
def test_encode_rejects_non_string_keys(bad):
    with pytest.raises(InvalidRecordError):
        encode(bad)
