"""
Contracts application.

Persists the brand/creator contracts and their milestones that the escrow
engine funds and pays out. The deliverable workflow that moves milestones
to READY lives outside this project; here milestones are only read, and
marked PAID by the payments release coordinator.

Usage:
    from contracts.models import Contract, Milestone, ContractStatus, MilestoneStatus
"""
