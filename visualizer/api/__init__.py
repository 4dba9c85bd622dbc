"""HTTP API for the workflow visualizer."""
