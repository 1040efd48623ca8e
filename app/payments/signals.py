"""
Django signals for payments app.

Custom signals emitted by the escrow engine after the database
transaction that caused them has committed. The notification layer
subscribes to these; the engine itself has no receivers.

Signals:
    escrow_funded(escrow)              - Deposit confirmed by Stripe
    milestone_released(payment)        - Milestone transfer completed
    payout_account_activated(account)  - Creator account became ACTIVE

Usage:
    from django.dispatch import receiver
    from payments.signals import milestone_released

    @receiver(milestone_released)
    def notify_creator(sender, payment, **kwargs):
        ...
"""

from __future__ import annotations

import logging

from django.db import transaction
from django.dispatch import Signal

logger = logging.getLogger(__name__)


escrow_funded = Signal()
milestone_released = Signal()
payout_account_activated = Signal()


def send_after_commit(signal: Signal, sender, **kwargs) -> None:
    """
    Send a signal once the surrounding transaction commits.

    Runs immediately when no transaction is open. Receiver errors are
    logged and do not propagate, since the money movement they describe
    has already been recorded.
    """

    def _send():
        for receiver, response in signal.send_robust(sender=sender, **kwargs):
            if isinstance(response, Exception):
                logger.error(
                    "Signal receiver failed",
                    extra={"receiver": repr(receiver), "error": str(response)},
                )

    transaction.on_commit(_send)
