"""Goldfolio: live gold pricing and fractional-gold investment ledger."""

__version__ = "0.1.0"
