"""Validation of data crossing the storage boundary."""
