"""Background recording jobs."""
