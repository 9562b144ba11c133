"""Failure taxonomy shared by the bridge components."""

from __future__ import annotations


class BridgeError(Exception):
    """Base class for bridge failures."""


class ConnectivityFailure(BridgeError):
    """An instance could not be reached."""


class ParseFailure(BridgeError):
    """An instance returned an accessory tree we could not understand."""


class TranslationUnsupported(BridgeError):
    """An adapter cannot express a command with the service's characteristics."""


class SubscriptionFailure(BridgeError):
    """An instance rejected event registration."""


class TransportFailure(BridgeError):
    """A live control or status call failed."""


class UnsupportedIntent(BridgeError):
    """A fulfillment request named an intent we do not handle."""
