"""crowdfund: crowdfunding escrow with contributor-approved spending requests."""

__version__ = "0.1.0"
