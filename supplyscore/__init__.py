"""Supplier ESG scoring and scenario analysis.

Scores suppliers on environmental, social and governance metrics against
industry or global bands, applies a risk penalty, and runs counterfactual
scenarios (S1-S4) over the resulting rankings.
"""
