"""pointdo - Walk a pointer through markdown task lists.

This package provides a CLI that keeps a single "current task" marker on one
unchecked checkbox item across an ordered set of markdown files, and a
layered YAML configuration describing which files those are.

Installation:
    # Standalone (recommended)
    uv tool install pointdo

    # From a checkout
    uv pip install -e .
"""

__version__ = "0.1.0"
