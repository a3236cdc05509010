"""opsgate command-line interface."""
