"""Sensillum - protocol diagnostics for reverse proxies, load balancers and WAFs."""

__version__ = "0.1.0"
