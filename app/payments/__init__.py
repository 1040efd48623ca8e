"""
Payments app: escrow funding and milestone payment release.

This app handles:
- Escrow creation, funding confirmation and refund
- Milestone releases to creators via Stripe Connect transfers
- Creator payout account onboarding and status
- Stripe webhook intake and processing

Related apps:
    - contracts: Contract and Milestone records the engine reads
    - authentication: User model (brand / creator roles)

Usage:
    from payments.services import EscrowLedgerService, MilestoneReleaseService

    creation = EscrowLedgerService().create_escrow(contract_id, brand)
    payment = MilestoneReleaseService().release_milestone(milestone_id, brand)
"""
