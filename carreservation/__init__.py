"""
Car reservation booking: slot availability and overlap-free reservations.
"""

__version__ = "0.1.0"
