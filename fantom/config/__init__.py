"""
Configuration for the Fantom search core.
"""
