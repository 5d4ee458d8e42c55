"""HTTP adapter over the workflow services."""
