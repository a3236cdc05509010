"""Authorization engine and account-status lifecycle for the operations dashboard."""
