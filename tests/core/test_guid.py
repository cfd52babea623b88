"""Tests for composite GUID encoding and decoding."""

import pytest

from catalog_bridge.core.guid import CompositeGuid, decode_guid, encode_guid


class TestCompositeGuid:
    """Encoding and decoding of prefixed and plain GUIDs."""

    def test_plain_guid_round_trip(self):
        """A GUID without prefix is the native id."""
        guid = CompositeGuid("a1b2")
        assert guid.encode() == "a1b2"
        assert not guid.is_generated
        assert decode_guid("a1b2") == guid

    def test_prefixed_guid_round_trip(self):
        """A prefixed GUID reads prefix!native_id."""
        assert encode_guid("a1b2", "RTT") == "RTT!a1b2"
        decoded = decode_guid("RTT!a1b2")
        assert decoded.native_id == "a1b2"
        assert decoded.generated_prefix == "RTT"
        assert decoded.is_generated

    def test_splits_on_first_separator_only(self):
        """Separators after the first belong to the native id."""
        decoded = decode_guid("AST!a!b")
        assert decoded.generated_prefix == "AST"
        assert decoded.native_id == "a!b"
        assert decoded.encode() == "AST!a!b"

    def test_leading_separator_is_part_of_id(self):
        """A separator with nothing before it is not a prefix."""
        decoded = decode_guid("!abc")
        assert decoded.generated_prefix is None
        assert decoded.native_id == "!abc"

    def test_none_passes_through(self):
        """Decoding None yields None."""
        assert decode_guid(None) is None

    @pytest.mark.parametrize("native_id,prefix", [
        ("0f1e2d3c", None),
        ("0f1e2d3c", "RTT"),
        ("with!bang", "AST"),
    ])
    def test_decode_inverts_encode(self, native_id, prefix):
        """decode(encode(id, prefix)) gives back both parts."""
        decoded = decode_guid(encode_guid(native_id, prefix))
        assert (decoded.native_id, decoded.generated_prefix) == (native_id, prefix)

    def test_str_is_encoded_form(self):
        assert str(CompositeGuid("x", "RTT")) == "RTT!x"
