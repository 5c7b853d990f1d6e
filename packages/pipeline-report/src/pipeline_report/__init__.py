"""Quality-gate aggregation and pull-request reporting for CI pipelines."""

__version__ = "0.1.0"
