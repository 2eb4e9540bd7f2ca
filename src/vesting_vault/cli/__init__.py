"""Command line interface for the vesting vault."""
