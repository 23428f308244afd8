"""
Configuration package for Roster.

Module constants and frozen dataclasses consumed by validation, schema
inference, bulk processing and audit retention.
"""
