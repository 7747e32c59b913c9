"""
Recalculator component: batch strength score recalculation.
"""
