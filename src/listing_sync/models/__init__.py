"""
Models Package

Raw feed listing wrapper and the sync run report.
"""
