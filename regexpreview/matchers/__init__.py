"""Problem matcher engine: compile, extract, and live-preview."""

from regexpreview.matchers import base, compiler, extractor, live

__all__ = ["base", "compiler", "extractor", "live"]
