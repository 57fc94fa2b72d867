"""
Ranked retrieval over a Redis keyspace.

This module provides:
1. Query parameter validation and scoped tag parsing
2. Cursor-based scanning with per-record failure isolation
3. Score-based ranking with a fixed top-N cutoff
4. Response formatting
"""
