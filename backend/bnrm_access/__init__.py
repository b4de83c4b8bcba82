"""Layered permission resolution service for the BNRM administration platform."""

__version__ = "0.1.0"
