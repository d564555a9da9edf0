"""Scenario analysis (S1-S4) and the statistics it reports."""
