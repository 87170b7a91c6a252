"""Account Events API: Salesforce account creation with ACCOUNT_CREATED event publishing."""

__version__ = "1.0.0"
