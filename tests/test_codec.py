"""Tests for the Base64 and PEM codecs."""

import pytest

from cipherdesk.core.codec import (
    Base64Variant,
    PemLabel,
    decode_base64,
    decode_pem,
    encode_base64,
    encode_pem,
    looks_like_pem,
    parse_pem,
)
from cipherdesk.core.errors import ErrorKind, MalformedEncodingError


class TestBase64Encoding:
    """Tests for Base64 encoding."""

    def test_standard_encoding(self):
        assert encode_base64(b"hello") == "aGVsbG8="

    def test_url_safe_encoding(self):
        """Test URL-safe alphabet replaces + and /."""
        assert encode_base64(b"\xfb\xff", Base64Variant.STANDARD) == "+/8="
        assert encode_base64(b"\xfb\xff", Base64Variant.URL_SAFE) == "-_8="

    def test_no_padding_variants(self):
        assert encode_base64(b"\xfb\xff", Base64Variant.NO_PADDING) == "+/8"
        assert encode_base64(b"\xfb\xff", Base64Variant.URL_SAFE_NO_PADDING) == "-_8"

    def test_variant_accepts_string_value(self):
        assert encode_base64(b"\xfb\xff", "url-safe") == "-_8="

    def test_empty_input(self):
        assert encode_base64(b"") == ""


class TestBase64Decoding:
    """Tests for Base64 decoding."""

    def test_standard_decoding(self):
        assert decode_base64("aGVsbG8=") == b"hello"

    def test_padding_is_optional(self):
        """Test unpadded input decodes for every variant."""
        assert decode_base64("aGVsbG8") == b"hello"
        assert decode_base64("-_8", Base64Variant.URL_SAFE) == b"\xfb\xff"
        assert decode_base64("+/8=", Base64Variant.NO_PADDING) == b"\xfb\xff"

    def test_surrounding_whitespace_is_ignored(self):
        assert decode_base64("  aGVsbG8=\n") == b"hello"

    def test_empty_string_decodes_to_empty_bytes(self):
        assert decode_base64("") == b""

    def test_invalid_character_raises(self):
        with pytest.raises(MalformedEncodingError) as exc_info:
            decode_base64("a$b=")

        assert exc_info.value.kind == ErrorKind.MALFORMED_ENCODING

    def test_url_safe_characters_rejected_in_standard(self):
        with pytest.raises(MalformedEncodingError):
            decode_base64("-_8=")

    def test_standard_characters_rejected_in_url_safe(self):
        with pytest.raises(MalformedEncodingError):
            decode_base64("+/8=", Base64Variant.URL_SAFE)

    def test_impossible_length_raises(self):
        """Test a single dangling character cannot be padded into a block."""
        with pytest.raises(MalformedEncodingError):
            decode_base64("aGVsb")

    def test_padding_in_the_middle_raises(self):
        with pytest.raises(MalformedEncodingError):
            decode_base64("aG=VsbG8")

    def test_round_trip_binary(self):
        data = bytes(range(256))
        for variant in Base64Variant:
            assert decode_base64(encode_base64(data, variant), variant) == data


class TestPem:
    """Tests for PEM armor."""

    def test_encode_layout(self):
        """Test header, footer and 64-character body lines."""
        pem = encode_pem(bytes(100), PemLabel.PUBLIC_KEY)
        lines = pem.split("\n")

        assert lines[0] == "-----BEGIN PUBLIC KEY-----"
        assert lines[-1] == "-----END PUBLIC KEY-----"
        assert all(len(line) == 64 for line in lines[1:-2])
        assert 0 < len(lines[-2]) <= 64

    def test_parse_round_trip(self):
        data = bytes(range(200))
        block = parse_pem(encode_pem(data, PemLabel.PRIVATE_KEY))

        assert block.label == "PRIVATE KEY"
        assert block.data == data

    def test_parse_tolerates_whitespace(self):
        """Test CRLF line endings and indentation are stripped."""
        pem = encode_pem(b"\x30\x01\x00", "PUBLIC KEY")
        messy = "\r\n".join("   " + line for line in pem.split("\n")) + "\r\n"

        assert decode_pem(messy) == b"\x30\x01\x00"

    def test_missing_footer_raises(self):
        pem = encode_pem(bytes(32), PemLabel.PUBLIC_KEY)
        truncated = pem.rsplit("\n", 1)[0]

        with pytest.raises(MalformedEncodingError) as exc_info:
            parse_pem(truncated)

        assert exc_info.value.kind == ErrorKind.MALFORMED_ENCODING

    def test_missing_header_raises(self):
        with pytest.raises(MalformedEncodingError):
            parse_pem("AAAA\n-----END PUBLIC KEY-----")

    def test_mismatched_labels_raise(self):
        text = "-----BEGIN PUBLIC KEY-----\nAAAA\n-----END PRIVATE KEY-----"
        with pytest.raises(MalformedEncodingError):
            parse_pem(text)

    def test_empty_body_raises(self):
        with pytest.raises(MalformedEncodingError):
            parse_pem("-----BEGIN PUBLIC KEY-----\n-----END PUBLIC KEY-----")

    def test_invalid_body_raises(self):
        with pytest.raises(MalformedEncodingError):
            parse_pem("-----BEGIN PUBLIC KEY-----\nA$$A\n-----END PUBLIC KEY-----")

    def test_decode_with_unexpected_label_raises(self):
        pem = encode_pem(bytes(8), PemLabel.PRIVATE_KEY)
        with pytest.raises(MalformedEncodingError):
            decode_pem(pem, PemLabel.PUBLIC_KEY)

    def test_looks_like_pem(self):
        assert looks_like_pem(encode_pem(bytes(8), PemLabel.PUBLIC_KEY))
        assert not looks_like_pem("MIIBIjANBgkqhkiG9w0BAQEFAAOCAQ8AMIIBCgKCAQEA")
