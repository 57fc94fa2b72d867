"""
Fantom search core.

Scans a Redis keyspace for candidate records, scores each one against a
free-text query with a pluggable relevance function and returns the top
matches.
"""

__version__ = "0.1.0"
