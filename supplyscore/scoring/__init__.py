"""Supplier scoring pipeline.

derive -> impute -> normalize -> pillars -> composite -> risk -> final.
Pure functions of (record, settings, band context); no I/O after the band
context is loaded.
"""
