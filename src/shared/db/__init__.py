"""
Database access for the analytics core.
"""
