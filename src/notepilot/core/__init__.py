"""Agent loop, task state and supporting services."""
