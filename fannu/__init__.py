"""
FanNu: creator monetization (VIP lists, drops, broadcasts, bookings)
"""

__version__ = "1.0.0"
