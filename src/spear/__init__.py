"""SPEAR - ground radar / missile engagement simulation engine."""

__version__ = "0.1.0"
