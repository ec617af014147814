"""Booking lifecycle automation job."""

__version__ = "0.1.0"
