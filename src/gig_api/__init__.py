"""Gig API: marketplace back end with fraud detection and a hash-chained audit log."""

__version__ = "0.1.0"
