"""
Payment services for the escrow engine.

This module provides:
- EscrowLedgerService: Escrow creation, funding confirmation, refund
- MilestoneReleaseService: Milestone releases (reserve, transfer, finalize)
- PayoutAccountService: Stripe Connect onboarding and status

Services take their collaborators at construction, which is how tests
swap in a mock Stripe adapter:

    from payments.services import MilestoneReleaseService

    service = MilestoneReleaseService(stripe_adapter=mock_adapter)
    payment = service.release_milestone(milestone.id, brand)
"""

from payments.services.escrow_ledger import EscrowCreation, EscrowLedgerService
from payments.services.milestone_release import MilestoneReleaseService
from payments.services.payout_account import (
    ConnectStatusSnapshot,
    OnboardingLink,
    PayoutAccountService,
)

__all__ = [
    "ConnectStatusSnapshot",
    "EscrowCreation",
    "EscrowLedgerService",
    "MilestoneReleaseService",
    "OnboardingLink",
    "PayoutAccountService",
]
