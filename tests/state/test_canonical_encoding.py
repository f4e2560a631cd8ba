from __future__ import annotations

import random

import pytest

from honorary_quote_fee.state.canonical import (
    canonical_json_bytes,
    decode_bytes,
    decode_str,
    decode_uvarint,
    domain_sep_bytes,
    encode_bytes,
    encode_str,
    encode_uvarint,
    sha256_hex,
)


class TestUvarint:
    def test_known_encodings(self) -> None:
        assert encode_uvarint(0) == b"\x00"
        assert encode_uvarint(127) == b"\x7f"
        assert encode_uvarint(128) == b"\x80\x01"
        assert encode_uvarint(300) == b"\xac\x02"

    def test_decode_reports_next_offset(self) -> None:
        data = b"\xff" + encode_uvarint(300) + b"\x01"
        assert decode_uvarint(data, 1) == (300, 3)

    def test_random_values_decode_to_themselves(self) -> None:
        rng = random.Random(0)
        for _ in range(500):
            v = rng.getrandbits(rng.randrange(1, 129))
            assert decode_uvarint(encode_uvarint(v)) == (v, len(encode_uvarint(v)))

    def test_rejects_truncated(self) -> None:
        with pytest.raises(ValueError):
            decode_uvarint(b"\x80")

    def test_rejects_non_minimal(self) -> None:
        with pytest.raises(ValueError):
            decode_uvarint(b"\x80\x00")

    def test_rejects_too_long(self) -> None:
        with pytest.raises(ValueError):
            decode_uvarint(b"\xff" * 19 + b"\x01")

    def test_rejects_negative(self) -> None:
        with pytest.raises(ValueError):
            encode_uvarint(-1)


class TestLengthPrefixed:
    def test_bytes(self) -> None:
        assert encode_bytes(b"ab") == b"\x02ab"
        assert decode_bytes(b"\x02ab") == (b"ab", 3)

    def test_truncated(self) -> None:
        with pytest.raises(ValueError):
            decode_bytes(b"\x05ab")

    def test_str_utf8(self) -> None:
        enc = encode_str("Ω")
        assert enc == b"\x02\xce\xa9"
        assert decode_str(enc) == ("Ω", 3)

    def test_str_rejects_surrogates(self) -> None:
        with pytest.raises(TypeError):
            encode_str("\ud800")

    def test_invalid_utf8(self) -> None:
        with pytest.raises(ValueError):
            decode_str(b"\x01\xff")


class TestDomainSeparation:
    def test_format(self) -> None:
        assert domain_sep_bytes("policy") == b"hqf:policy:v1\x00"
        assert domain_sep_bytes("policy", version=2) == b"hqf:policy:v2\x00"

    def test_labels_differ(self) -> None:
        assert domain_sep_bytes("a") != domain_sep_bytes("b")

    def test_rejects_bad_labels(self) -> None:
        with pytest.raises(TypeError):
            domain_sep_bytes("")
        with pytest.raises(ValueError):
            domain_sep_bytes("a\x00b")
        with pytest.raises(ValueError):
            domain_sep_bytes("Ω")
        with pytest.raises(ValueError):
            domain_sep_bytes("a", version=0)


class TestCanonicalJson:
    def test_sorted_compact(self) -> None:
        assert canonical_json_bytes({"b": 1, "a": [2, "x"]}) == b'{"a":[2,"x"],"b":1}'

    def test_rejects_floats(self) -> None:
        with pytest.raises(TypeError):
            canonical_json_bytes({"a": 1.0})

    def test_rejects_non_str_keys(self) -> None:
        with pytest.raises(TypeError):
            canonical_json_bytes({1: 1})

    def test_digest_prefix(self) -> None:
        d = sha256_hex(b"")
        assert d == "0x" + "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
