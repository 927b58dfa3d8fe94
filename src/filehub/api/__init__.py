"""HTTP API for FileHub."""
