"""Tests for base64 codec strategies."""

from __future__ import annotations

import shutil
import subprocess
from unittest.mock import MagicMock, patch

import pytest

from itermcat.codec import (
    Base64Codec,
    EncodedPayload,
    ExternalBase64Codec,
    LibraryBase64Codec,
    select_codec,
)
from itermcat.errors import MissingDependency

HAS_BASE64_TOOL = shutil.which("base64") is not None


class UnavailableCodec(LibraryBase64Codec):
    name = "unavailable"

    def is_available(self) -> bool:
        return False


class TestBase64Codec:
    """Tests for the abstract codec."""

    def test_abstract_methods(self) -> None:
        """Test that Base64Codec is abstract."""
        with pytest.raises(TypeError):
            Base64Codec()  # type: ignore


class TestLibraryBase64Codec:
    """Tests for LibraryBase64Codec."""

    @pytest.mark.parametrize("data", [b"", b"\x00", b"AB", b"abcd", bytes(range(256))])
    def test_round_trip(self, data: bytes) -> None:
        """Test decode(encode(x)) == x for awkward lengths."""
        codec = LibraryBase64Codec()
        assert codec.decode(codec.encode(data)) == data

    def test_padding(self) -> None:
        """Test standard '=' padding."""
        codec = LibraryBase64Codec()
        assert codec.encode(b"AB") == "QUI="
        assert codec.encode(b"A") == "QQ=="

    def test_decode_invalid_raises_value_error(self) -> None:
        """Test that malformed input raises ValueError."""
        with pytest.raises(ValueError):
            LibraryBase64Codec().decode("QUI")


class TestExternalBase64Codec:
    """Tests for ExternalBase64Codec."""

    def test_gnu_flags(self) -> None:
        """Test flag selection for GNU coreutils."""
        codec = ExternalBase64Codec()
        codec._version = "base64 (GNU coreutils) 9.4"
        assert codec.encode_args() == ["base64", "-w0"]
        assert codec.decode_args() == ["base64", "-di"]

    def test_fourmilab_flags(self) -> None:
        """Test flag selection for fourmilab base64."""
        codec = ExternalBase64Codec()
        codec._version = "base64 1.5 by John Walker (fourmilab.ch)"
        assert codec.encode_args() == ["base64"]
        assert codec.decode_args() == ["base64", "-d"]

    def test_bsd_flags(self) -> None:
        """Test flag selection for other implementations."""
        codec = ExternalBase64Codec()
        codec._version = ""
        assert codec.decode_args() == ["base64", "-D"]

    def test_version_probed_once(self) -> None:
        """Test that the version lookup is cached on the instance."""
        codec = ExternalBase64Codec()
        result = MagicMock(stdout="base64 (GNU coreutils) 9.4\n", stderr="")
        with patch("itermcat.codec.subprocess.run", return_value=result) as run:
            assert "GNU" in codec.version
            assert "GNU" in codec.version
        assert run.call_count == 1

    def test_temp_file_removed_on_failure(self, tmp_path) -> None:
        """Test that the temporary file is deleted when the tool fails."""
        codec = ExternalBase64Codec()
        codec._version = "GNU"
        with patch("itermcat.codec.tempfile.tempdir", str(tmp_path)):
            with patch("itermcat.codec.subprocess.run", side_effect=subprocess.TimeoutExpired("base64", 1)):
                with pytest.raises(ValueError, match="timed out"):
                    codec.encode(b"data")
        assert list(tmp_path.iterdir()) == []

    def test_nonzero_exit_raises(self, tmp_path) -> None:
        """Test that a failing tool raises ValueError and cleans up."""
        codec = ExternalBase64Codec()
        codec._version = "GNU"
        result = MagicMock(returncode=1, stdout=b"", stderr=b"invalid input")
        with patch("itermcat.codec.tempfile.tempdir", str(tmp_path)):
            with patch("itermcat.codec.subprocess.run", return_value=result):
                with pytest.raises(ValueError, match="invalid input"):
                    codec.decode("!!")
        assert list(tmp_path.iterdir()) == []

    @pytest.mark.skipif(not HAS_BASE64_TOOL, reason="base64 tool not installed")
    @pytest.mark.parametrize("data", [b"", b"\x00", b"AB", bytes(range(256)) * 4])
    def test_round_trip_with_system_tool(self, data: bytes) -> None:
        """Test round trip through the real base64 tool."""
        codec = ExternalBase64Codec()
        encoded = codec.encode(data)
        assert encoded == LibraryBase64Codec().encode(data)
        assert codec.decode(encoded) == data

    def test_unavailable_without_executable(self) -> None:
        """Test availability check for a missing tool."""
        assert ExternalBase64Codec("no-such-base64-tool").is_available() is False


class TestSelectCodec:
    """Tests for select_codec."""

    def test_auto_prefers_library(self) -> None:
        """Test that the library codec ranks first."""
        assert isinstance(select_codec(), LibraryBase64Codec)

    def test_auto_skips_unavailable(self) -> None:
        """Test that unavailable codecs are skipped."""
        fallback = LibraryBase64Codec()
        assert select_codec("auto", [UnavailableCodec(), fallback]) is fallback

    def test_named_codec(self) -> None:
        """Test selecting a codec by name."""
        external = ExternalBase64Codec()
        with patch.object(external, "is_available", return_value=True):
            assert select_codec("external", [LibraryBase64Codec(), external]) is external

    def test_missing_external_tool(self) -> None:
        """Test MissingDependency when the base64 tool is absent."""
        with pytest.raises(MissingDependency, match="no-such-base64-tool"):
            select_codec("external", [ExternalBase64Codec("no-such-base64-tool")])

    def test_unknown_name(self) -> None:
        """Test that unknown codec names are rejected."""
        with pytest.raises(ValueError):
            select_codec("rot13")


class TestEncodedPayload:
    """Tests for EncodedPayload."""

    def test_from_bytes(self) -> None:
        """Test that size is the decoded length."""
        payload = EncodedPayload.from_bytes(b"AB", LibraryBase64Codec())
        assert payload.text == "QUI="
        assert payload.decoded_length == 2

    def test_size_from_decoding_not_estimate(self) -> None:
        """Test that padding is accounted for."""
        payload = EncodedPayload.from_text("QQ==", LibraryBase64Codec())
        assert payload.decoded_length == 1

    def test_estimates_when_decoding_fails(self) -> None:
        """Test fallback to a length estimate for undecodable text."""
        payload = EncodedPayload.from_text("QUJDRA", LibraryBase64Codec())
        assert payload.text == "QUJDRA"
        assert payload.decoded_length == 6 * 3 // 4
