"""Customer thread discovery: link orders to their customer conversations."""

__version__ = "0.1.0"
