"""
Price Proxy Service
Aggregates exchange ticker prices into a single cached JSON document.
"""

__version__ = "1.0.0"
__author__ = "Price Proxy Team"
__description__ = "Concurrent ticker fan-out with a short-lived price cache"
