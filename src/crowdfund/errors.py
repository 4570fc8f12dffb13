"""Campaign error taxonomy.

Every rejected operation raises exactly one of these. They are rooted at
ValueError so callers that only care about "the operation was refused"
can keep catching ValueError, while callers that need to distinguish
failure modes can catch the specific class.

A raised CampaignError always means the campaign state is unchanged.
"""

from __future__ import annotations


class CampaignError(ValueError):
    """Base class for every rejected campaign operation."""


class Unauthorized(CampaignError):
    """Caller lacks the required role (manager or contributor)."""


class InsufficientContribution(CampaignError):
    """Contribution is below the campaign's minimum."""


class NotFound(CampaignError):
    """Unknown request index or campaign id."""


class DuplicateApproval(CampaignError):
    """The same identity tried to approve one request twice."""


class AlreadyComplete(CampaignError):
    """The request has already been finalized."""


class InsufficientApprovals(CampaignError):
    """Strict majority of current contributors has not approved."""


class InsufficientFunds(CampaignError):
    """Request value exceeds the campaign balance."""


class InvalidAmount(CampaignError):
    """Amount is not a positive integer."""


class InvalidIdentity(CampaignError):
    """Identity is not a well-formed address."""


class TransferFailed(CampaignError):
    """The transfer rail refused or failed to pay the recipient."""
