"""
Stats API component: FastAPI HTTP surface over aggregation and scoring.
"""
