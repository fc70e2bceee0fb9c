"""Error types raised by itermcat."""

from __future__ import annotations


class ImgcatError(Exception):
    """Base class for itermcat errors."""

    pass


class InvalidSizeSpec(ImgcatError, ValueError):
    """Width or height token is not 'auto' or a number with a unit."""

    def __init__(self, token: str) -> None:
        self.token = token
        super().__init__(f"Invalid image sizing unit - '{token}'")


class MissingDependency(ImgcatError):
    """A required external tool is not installed."""

    def __init__(self, dependency: str) -> None:
        self.dependency = dependency
        super().__init__(f"missing dependency: can't find {dependency}")


class SourceUnavailable(ImgcatError):
    """An image file or URL could not be read."""

    def __init__(self, source: str, reason: str) -> None:
        self.source = source
        self.reason = reason
        super().__init__(f"{source}: {reason}")


class NoImageProduced(ImgcatError):
    """No image reached the encoder during a run."""

    def __init__(self) -> None:
        super().__init__("No image provided. Check command line options.")
