"""Path safety checks."""
