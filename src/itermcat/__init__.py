"""Display images inline in iTerm2-compatible terminals."""

__version__ = "0.1.0"
