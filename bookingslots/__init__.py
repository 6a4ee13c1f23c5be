"""
bookingslots - availability engine for appointment booking.
"""

__version__ = "0.1.0"
