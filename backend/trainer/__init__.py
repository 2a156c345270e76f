"""
Trainer - personal activity tracker with week-partitioned local storage.
"""
__version__ = "1.0.0"
