"""iTerm2 inline images protocol encoder.

See: https://iterm2.com/documentation-images.html

Two wire variants are supported:
- Legacy: the whole image in one File= sequence
- Multipart: a MultipartFile= header, FilePart= chunks, then FileEnd
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from enum import Enum

from itermcat.codec import Base64Codec, EncodedPayload, LibraryBase64Codec
from itermcat.directives import DisplayDirectives
from itermcat.transport import Transport

logger = logging.getLogger(__name__)

# Base64 characters per FilePart frame. Fixed by the protocol.
CHUNK_SIZE = 200


class FrameState(Enum):
    """Progress of a single image through the encoder."""

    IDLE = "idle"
    HEADER_SENT = "header_sent"
    LEGACY_PAYLOAD_SENT = "legacy_payload_sent"
    PAYLOAD_CHUNKING = "payload_chunking"
    FINALIZED = "finalized"


def iter_chunks(text: str, size: int = CHUNK_SIZE) -> Iterator[str]:
    """Split base64 text into consecutive slices of at most size characters."""
    for offset in range(0, len(text), size):
        yield text[offset : offset + size]


class ImageFrameEncoder:
    """Serializes images into OSC 1337 frames written through a Transport.

    Images are emitted one at a time; each runs to FINALIZED before the
    next one starts.
    """

    def __init__(self, transport: Transport, codec: Base64Codec | None = None) -> None:
        self.transport = transport
        self.codec = codec or LibraryBase64Codec()
        self.state = FrameState.IDLE
        self.images_displayed = 0

    def display(self, data: bytes, directives: DisplayDirectives) -> None:
        """Encode raw image bytes and emit them."""
        self.emit(EncodedPayload.from_bytes(data, self.codec), directives)

    def emit(self, payload: EncodedPayload, directives: DisplayDirectives) -> None:
        """Emit one image.

        Args:
            payload: Base64 image data and its decoded length
            directives: Display options for this image
        """
        logger.debug(
            "Printing image %s (size=%d, legacy=%s)",
            directives.filename or "<stdin>",
            payload.decoded_length,
            directives.use_legacy_protocol,
        )
        self.state = FrameState.IDLE
        self._write_header(payload, directives)

        if directives.use_legacy_protocol:
            self.transport.write(f":{payload.text}")
            self.transport.close_frame()
            self.state = FrameState.LEGACY_PAYLOAD_SENT
        else:
            self.transport.close_frame()
            self._write_chunks(payload.text)

        self.transport.write("\n")
        if directives.print_filename_after and directives.filename:
            self.transport.write(f"{directives.filename}\n")

        self.state = FrameState.FINALIZED
        self.images_displayed += 1

    def header(self, payload: EncodedPayload, directives: DisplayDirectives) -> str:
        """Build the header text that follows the frame introducer."""
        kind = "File" if directives.use_legacy_protocol else "MultipartFile"
        parts = [
            f"1337;{kind}=inline={int(directives.inline)}",
            f";size={payload.decoded_length}",
        ]
        if directives.filename:
            # Base64 keeps ';' in filenames from splitting the argument list.
            # fsencode restores the raw bytes of undecodable names from argv
            parts.append(f";name={self.codec.encode(os.fsencode(directives.filename))}")
        if directives.width:
            parts.append(f";width={directives.width}")
        if directives.height:
            parts.append(f";height={directives.height}")
        if directives.preserve_aspect_ratio is not None:
            parts.append(f";preserveAspectRatio={int(directives.preserve_aspect_ratio)}")
        if directives.file_type_hint:
            parts.append(f";type={directives.file_type_hint}")
        return "".join(parts)

    def _write_header(self, payload: EncodedPayload, directives: DisplayDirectives) -> None:
        header = self.header(payload, directives)
        self.transport.open_frame()
        self.transport.write(header)
        self.state = FrameState.HEADER_SENT

    def _write_chunks(self, text: str) -> None:
        self.state = FrameState.PAYLOAD_CHUNKING
        chunks = 0
        try:
            for chunk in iter_chunks(text):
                self.transport.open_frame()
                self.transport.write(f"1337;FilePart={chunk}")
                self.transport.close_frame()
                chunks += 1
        except KeyboardInterrupt:
            # Terminate the transfer so the terminal is not left waiting
            logger.debug("Interrupted after %d chunks, sending FileEnd", chunks)
            if self.transport.frame_open:
                self.transport.close_frame()
            self._write_file_end()
            raise
        logger.debug("Sent image data in %d chunks", chunks)
        self._write_file_end()

    def _write_file_end(self) -> None:
        self.transport.open_frame()
        self.transport.write("1337;FileEnd")
        self.transport.close_frame()
