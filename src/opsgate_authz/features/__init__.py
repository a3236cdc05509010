"""Feature packages: identity, accounts, access, authz."""
