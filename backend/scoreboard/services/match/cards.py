import math
from typing import Iterable, List, Optional

from .state import Card


def is_active(card: Card, now: float) -> bool:
    return card.expires_at is None or card.expires_at > now


def active_cards(cards: Iterable[Card], now: float) -> List[Card]:
    """Cards a viewer should still show at ``now``, in issue order.

    Display filter only: expired cards stay in the stored record until the
    operator removes them or resets the scoreboard.
    """
    return [c for c in cards if is_active(c, now)]


def card_remaining(card: Card, now: float) -> Optional[int]:
    """Whole seconds left on a timed card, None for cards that never expire."""
    if card.expires_at is None:
        return None
    return max(0, math.floor(card.expires_at - now))
