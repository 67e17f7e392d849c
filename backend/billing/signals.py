"""
Change notification for billing resources.

Receivers get ``booking_id`` and ``resource`` ("charges", "receivable" or
"payment_attempt") once the surrounding transaction has committed, and use
them to invalidate whatever they derived from that booking.
"""

import logging

from django.db import transaction
from django.dispatch import Signal

logger = logging.getLogger(__name__)

billing_changed = Signal()

RESOURCES = ("charges", "receivable", "payment_attempt")


def notify_changed(booking_id, resource, sender=None):
    if resource not in RESOURCES:
        raise ValueError(f"Unknown billing resource: {resource}")

    def _send():
        logger.debug("billing_changed booking=%s resource=%s", booking_id, resource)
        billing_changed.send(sender=sender, booking_id=booking_id, resource=resource)

    transaction.on_commit(_send)
