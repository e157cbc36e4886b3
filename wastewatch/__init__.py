"""
WasteWatch - photo-based waste reporting with AI classification,
organization verification, and GreenUnits rewards.
"""

__version__ = "0.1.0"
