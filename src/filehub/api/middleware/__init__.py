"""FileHub API middleware package."""
