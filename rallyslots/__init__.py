"""
rallyslots - free-slot engine for coordinating tennis matches.
"""

__version__ = "0.3.0"
