"""Exception hierarchy for the fault pipeline."""

from __future__ import annotations


class FaultwatchError(Exception):
    """Base exception for all faultwatch errors."""


class ConfigError(FaultwatchError):
    """Configuration could not be turned into a usable policy."""


class TransportError(FaultwatchError):
    """An alert could not be handed to the mail transport."""
