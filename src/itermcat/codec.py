"""Base64 codec strategies.

The inline images protocol carries image bytes (and filenames) as base64
text. Several interchangeable implementations are supported, ranked by
preference; one is selected at startup and used for the whole run.
"""

from __future__ import annotations

import base64
import binascii
import logging
import os
import shutil
import subprocess
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass

from itermcat.errors import MissingDependency

logger = logging.getLogger(__name__)


class Base64Codec(ABC):
    """Byte-to-text codec with standard base64 semantics, including padding."""

    name: str = ""

    def is_available(self) -> bool:
        return True

    @abstractmethod
    def encode(self, data: bytes) -> str:
        """Encode bytes to base64 text without line breaks.

        Raises:
            ValueError: If the data cannot be encoded
        """
        pass

    @abstractmethod
    def decode(self, text: str) -> bytes:
        """Decode base64 text.

        Raises:
            ValueError: If the text cannot be decoded
        """
        pass


class LibraryBase64Codec(Base64Codec):
    """Codec backed by the base64 module."""

    name = "library"

    def encode(self, data: bytes) -> str:
        return base64.standard_b64encode(data).decode("ascii")

    def decode(self, text: str) -> bytes:
        try:
            return base64.standard_b64decode(text)
        except binascii.Error as e:
            raise ValueError(f"Invalid base64 data: {e}") from e


class ExternalBase64Codec(Base64Codec):
    """Codec that runs the system base64 tool.

    Data is passed through a temporary file which is removed before each
    call returns. The flags differ between GNU coreutils, fourmilab and BSD
    flavors; the flavor is probed once per instance.
    """

    name = "external"

    def __init__(self, executable: str = "base64", timeout: float = 30.0) -> None:
        self.executable = executable
        self.timeout = timeout
        self._version: str | None = None

    def is_available(self) -> bool:
        return shutil.which(self.executable) is not None

    @property
    def version(self) -> str:
        """Output of `base64 --version`, cached after the first call."""
        if self._version is None:
            try:
                result = subprocess.run(
                    [self.executable, "--version"],
                    capture_output=True,
                    text=True,
                    timeout=self.timeout,
                )
                self._version = result.stdout + result.stderr
            except (OSError, subprocess.TimeoutExpired) as e:
                logger.debug("Could not probe %s version: %s", self.executable, e)
                self._version = ""
            logger.debug("base64 version: %s", self._version.replace("\n", " ").strip())
        return self._version

    def encode_args(self) -> list[str]:
        if "GNU" in self.version:
            return [self.executable, "-w0"]
        return [self.executable]

    def decode_args(self) -> list[str]:
        if "fourmilab" in self.version:
            return [self.executable, "-d"]
        if "GNU" in self.version:
            return [self.executable, "-di"]
        return [self.executable, "-D"]

    def _run(self, args: list[str], data: bytes) -> bytes:
        fd, temp_path = tempfile.mkstemp(prefix="itermcat-")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            with open(temp_path, "rb") as f:
                result = subprocess.run(
                    args,
                    stdin=f,
                    capture_output=True,
                    timeout=self.timeout,
                )
        except subprocess.TimeoutExpired as e:
            raise ValueError(f"{' '.join(args)} timed out after {self.timeout}s") from e
        except OSError as e:
            raise ValueError(f"{' '.join(args)} failed: {e}") from e
        finally:
            os.unlink(temp_path)

        if result.returncode != 0:
            error_msg = result.stderr.decode(errors="replace").strip() or "Unknown error"
            raise ValueError(f"{' '.join(args)} failed: {error_msg}")
        return result.stdout

    def encode(self, data: bytes) -> str:
        output = self._run(self.encode_args(), data)
        return output.decode("ascii").replace("\n", "").replace("\r", "")

    def decode(self, text: str) -> bytes:
        return self._run(self.decode_args(), text.encode("ascii"))


# Ranked from most to least preferred
DEFAULT_CODECS: tuple[type[Base64Codec], ...] = (LibraryBase64Codec, ExternalBase64Codec)

CODEC_CHOICES = ("auto", "library", "external")


def select_codec(
    preference: str = "auto",
    candidates: list[Base64Codec] | None = None,
) -> Base64Codec:
    """Pick the codec to use for this run.

    Args:
        preference: "auto" for the first available codec, or a codec name
        candidates: Codecs in ranked order (defaults to DEFAULT_CODECS)

    Returns:
        The selected codec

    Raises:
        MissingDependency: If the requested codec (or any codec, for "auto")
            is not available
        ValueError: If preference names no known codec
    """
    if candidates is None:
        candidates = [codec_cls() for codec_cls in DEFAULT_CODECS]

    if preference != "auto":
        matching = [c for c in candidates if c.name == preference]
        if not matching:
            raise ValueError(f"Unknown codec: {preference}")
        candidates = matching

    for codec in candidates:
        if codec.is_available():
            logger.debug("Using %s base64 codec", codec.name)
            return codec

    missing = candidates[-1]
    raise MissingDependency(getattr(missing, "executable", missing.name or "base64"))


@dataclass(frozen=True)
class EncodedPayload:
    """Base64 text of an image along with its decoded byte length."""

    text: str
    decoded_length: int

    @classmethod
    def from_bytes(cls, data: bytes, codec: Base64Codec) -> EncodedPayload:
        return cls.from_text(codec.encode(data), codec)

    @classmethod
    def from_text(cls, text: str, codec: Base64Codec) -> EncodedPayload:
        """Wrap base64 text, measuring its size by decoding it.

        If decoding fails the size is estimated from the text length.
        """
        try:
            size = len(codec.decode(text))
        except ValueError as e:
            logger.debug("Base64 decoding failed (%s), using size estimation", e)
            size = len(text) * 3 // 4
        return cls(text=text, decoded_length=size)
