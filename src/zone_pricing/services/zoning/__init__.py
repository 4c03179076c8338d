"""Zone resolution."""
