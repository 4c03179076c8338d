"""Zone pricing engine."""
