"""Pharmacy point-of-sale and inventory backend."""

__version__ = "0.1.0"
