"""HTTP API for the weatherflow service."""
