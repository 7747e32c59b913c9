"""
Shared database models, schemas, caches and utilities.
"""
