"""STL share gateway: Drive browsing with expiring share links."""

__version__ = "0.1.0"
