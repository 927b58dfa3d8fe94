"""FileHub API routes."""
