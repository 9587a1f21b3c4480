"""
guards.py - Authorization and sale-window checks

Pure precondition checks shared by the purchase and admin operations.
Each check returns None on success and raises a PresaleError subclass
otherwise; none of them has side effects.

The sale window is half-open: [presale_start, presale_start + presale_period).
The instant equal to the end time counts as closed.
"""

from __future__ import annotations

from .core import (
    Config, PresaleView,
    Unauthorized, PresaleNotStarted, PresaleEnded, PresaleNotEnded,
)


def require_admin(view: PresaleView, sender: str) -> None:
    """
    Require that ``sender`` is the configured admin.

    Raises:
        Unauthorized: If sender differs from config.admin (exact comparison)
    """
    config = view.get_config()
    if sender != config.admin:
        raise Unauthorized(f"{sender} is not the admin")


def require_sale_open(config: Config, now: int) -> None:
    """
    Require that ``now`` falls inside the sale window.

    Raises:
        PresaleNotStarted: If now < presale_start
        PresaleEnded: If now >= presale_end
    """
    if now < config.presale_start:
        raise PresaleNotStarted(
            f"Presale starts at {config.presale_start}, now is {now}"
        )
    if now >= config.presale_end:
        raise PresaleEnded(f"Presale ended at {config.presale_end}, now is {now}")


def require_sale_closed(config: Config, now: int) -> None:
    """
    Require that the sale window has closed.

    Raises:
        PresaleNotEnded: If now < presale_end
    """
    if now < config.presale_end:
        raise PresaleNotEnded(f"Presale ends at {config.presale_end}, now is {now}")
