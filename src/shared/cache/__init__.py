"""
Redis-backed coordinator state.
"""
