"""
Core infrastructure for readaloud.

    - config.py: settings loading and validation
    - logging/: structured logging with numeric levels
    - metrics.py: optional Prometheus metrics
"""
