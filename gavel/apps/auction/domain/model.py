"""
Auction domain types
"""

from typing import NewType

ListingId = NewType("ListingId", str)

BidderId = NewType("BidderId", str)

# monetary amounts are whole currency units
Amount = NewType("Amount", int)
