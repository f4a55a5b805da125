"""
Ready-mix plant dashboard — real-time synchronization core.
"""

__version__ = "0.1.0"
