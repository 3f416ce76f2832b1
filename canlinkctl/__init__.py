"""Detect, configure, rename and activate USB-to-CAN interfaces."""

__version__ = "0.1.0"
