"""Exception types raised by the scheduling engine."""


class KoineError(Exception):
    pass


class InvalidQuality(KoineError, ValueError):
    """Review rating outside 1..4."""


class NoCurrentCard(KoineError, ValueError):
    """The session has no card to review right now."""


class StoreError(KoineError, RuntimeError):
    """A card store failed to read or persist a card."""


class ValidationError(KoineError, ValueError):
    """Malformed settings, filters, card state or import record."""
