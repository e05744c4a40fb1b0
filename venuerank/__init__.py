"""
Venue rank resolution for researcher publication lists: CORE conference
tiers and SJR journal quartiles, keyed by a disambiguated DBLP identity.
"""

__version__ = "0.1.0"
