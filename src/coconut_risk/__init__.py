"""Falling coconut risk estimation from live weather and nearby tree counts."""

__version__ = "0.1.0"
