"""
Scoring component: artist strength scores and rankings.
"""
