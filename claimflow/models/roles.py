"""
Approver roles and the authority ordering used by the approval workflow.
Role-Based Access Control reduced to one question: may this role act on
a claim at this tier?
"""

import enum

from claimflow.models.claim import WorkflowTier


class ApproverRole(str, enum.Enum):
    """
    Closed set of approver roles.
    Each role may act on claims at its own tier and below.
    """
    L1_APPROVER = "L1_APPROVER"  # Desk adjuster
    L2_APPROVER = "L2_APPROVER"  # Senior adjuster
    L3_APPROVER = "L3_APPROVER"  # Claims manager / SIU sign-off


_AUTHORITY = {
    ApproverRole.L1_APPROVER: WorkflowTier.L1,
    ApproverRole.L2_APPROVER: WorkflowTier.L2,
    ApproverRole.L3_APPROVER: WorkflowTier.L3,
}


def authority_tier(role: ApproverRole) -> WorkflowTier:
    """Highest tier the role is allowed to decide"""
    return _AUTHORITY[ApproverRole(role)]


def can_act_on(role: ApproverRole, tier: WorkflowTier) -> bool:
    """Check if the role's authority reaches the given tier"""
    return authority_tier(role).rank >= WorkflowTier(tier).rank


__all__ = ["ApproverRole", "authority_tier", "can_act_on"]
