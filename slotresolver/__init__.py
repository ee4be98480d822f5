"""
slotresolver - turn provider availability rules into bookable slots.
"""

__version__ = "0.1.0"
