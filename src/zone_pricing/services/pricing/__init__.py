"""Zone price resolution and the fee-stacking pipeline."""
