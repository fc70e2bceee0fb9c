"""Display directives attached to each inline image.

Directives are resolved once per image from CLI options and config, then
handed to the encoder read-only.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from enum import Enum

from itermcat.errors import InvalidSizeSpec

# ASCII digits with an optional p, x and % in that order, or the word "auto"
SIZE_SPEC_PATTERN = re.compile(r"[0-9]+p?x?%?")


class SizeUnit(Enum):
    """Units understood by the inline images protocol."""

    AUTO = "auto"
    CELLS = "cells"
    PIXELS = "px"
    PERCENT = "%"


@dataclass(frozen=True)
class SizeSpec:
    """A validated width or height token."""

    text: str

    @property
    def is_auto(self) -> bool:
        return self.text == "auto"

    @property
    def value(self) -> int | None:
        """Numeric part of the token, or None for 'auto'."""
        if self.is_auto:
            return None
        return int(re.match(r"[0-9]+", self.text).group(0))

    @property
    def unit(self) -> SizeUnit | None:
        """Unit of the token.

        Returns None for suffixes the pattern tolerates but the protocol
        does not define (e.g. "10p"); those are sent through unchanged.
        """
        if self.is_auto:
            return SizeUnit.AUTO
        suffix = self.text.lstrip("0123456789")
        if suffix == "":
            return SizeUnit.CELLS
        if suffix == "px":
            return SizeUnit.PIXELS
        if suffix == "%":
            return SizeUnit.PERCENT
        return None

    def __str__(self) -> str:
        return self.text


def parse_size_spec(token: str) -> SizeSpec:
    """Validate a width/height token.

    Args:
        token: Raw value such as "80", "250px", "100%" or "auto"

    Returns:
        SizeSpec wrapping the token unchanged

    Raises:
        InvalidSizeSpec: If the token does not match the size syntax
    """
    if token == "auto" or SIZE_SPEC_PATTERN.fullmatch(token):
        return SizeSpec(token)
    raise InvalidSizeSpec(token)


@dataclass(frozen=True)
class DisplayDirectives:
    """How a single image should be displayed."""

    inline: bool = True
    filename: str | None = None
    print_filename_after: bool = False
    width: str | None = None
    height: str | None = None
    # None leaves the choice to the terminal; True preserves, False stretches
    preserve_aspect_ratio: bool | None = None
    file_type_hint: str | None = None
    use_legacy_protocol: bool = False

    def with_filename(self, filename: str | None) -> DisplayDirectives:
        """Return a copy of these directives for another image."""
        return replace(self, filename=filename)
