"""Exception hierarchy shared by the codec, decoder and indexer."""

from __future__ import annotations


class StablindError(Exception):
    """Base class for every error raised by stablind."""


class EncodeError(StablindError, ValueError):
    """A value cannot be serialized with the requested Borsh type."""


class UnknownInstructionError(StablindError, KeyError):
    """No layout is registered for the requested instruction name."""


class DecodeError(StablindError, ValueError):
    """A payload is shorter than (or inconsistent with) its declared schema."""


class DerivationError(StablindError, RuntimeError):
    """No valid program-derived address exists for the given seeds."""
