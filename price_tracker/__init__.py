# price_tracker/__init__.py
"""Amazon / Flipkart price monitoring service."""

__version__ = "1.0.0"
