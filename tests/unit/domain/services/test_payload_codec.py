"""Unit tests for PayloadCodec."""

import pytest

from planbook.domain.services import PayloadCodec


def test_encode_is_utf8_json_with_indent():
    content = PayloadCodec.encode({"subject": "수학", "grade": "5"})
    assert content == '{\n  "subject": "수학",\n  "grade": "5"\n}'.encode("utf-8")


def test_decode_then_encode_gives_same_bytes(plan_payload):
    content = PayloadCodec.encode(plan_payload)
    assert PayloadCodec.encode(PayloadCodec.decode(content)) == content


def test_decode_tolerates_bom():
    assert PayloadCodec.decode(b'\xef\xbb\xbf{"a": 1}') == {"a": 1}


def test_decode_accepts_text():
    assert PayloadCodec.decode('{"a": 1}') == {"a": 1}


@pytest.mark.parametrize("content", [b"[1, 2]", b"not json"])
def test_decode_rejects_non_objects(content):
    with pytest.raises(ValueError):
        PayloadCodec.decode(content)
