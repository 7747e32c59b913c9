"""
Aggregator component: rollup-first stats reads and growth metrics.
"""
