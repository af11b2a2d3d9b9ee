"""Application package for the club elections service."""
