"""
Key-value store access for the search core.
"""
