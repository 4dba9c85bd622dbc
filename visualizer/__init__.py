"""Workflow visualizer: merges workflow definitions with execution traces into laid-out graphs."""

__version__ = "1.0.0"
