"""Monetary value attribution for offers."""

from __future__ import annotations

from decimal import Decimal

from offer_pipeline.domain.models import Offer, ValuePurpose

ZERO = Decimal("0")


def _present(amount: Decimal | None) -> bool:
    return amount is not None and amount > 0


def has_recorded_value(offer: Offer) -> bool:
    return _present(offer.offer_value) or _present(offer.po_value)


def resolve_value(offer: Offer, purpose: ValuePurpose) -> Decimal:
    """Return the single amount to count for ``offer``.

    REALIZED prefers the confirmed PO value over the quoted offer value.
    EXPOSURE prefers the quoted value. Missing, null and non-positive amounts
    fall through; the result is 0 when nothing is left.
    """
    if purpose is ValuePurpose.REALIZED:
        candidates = (offer.po_value, offer.offer_value)
    elif purpose is ValuePurpose.EXPOSURE:
        candidates = (offer.offer_value, offer.po_value)
    else:
        raise ValueError(f"Unknown value purpose: {purpose!r}")

    for amount in candidates:
        if _present(amount):
            return amount  # type: ignore[return-value]
    return ZERO
