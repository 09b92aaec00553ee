"""Load AWS Application Load Balancer access logs into SQLite."""

__version__ = "0.1.0"
