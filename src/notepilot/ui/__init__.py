"""Console rendering and interactive approval."""
