"""Data access for zones, services and pricing settings."""
