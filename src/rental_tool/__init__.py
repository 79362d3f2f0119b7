"""
Rental Pricing Tool Package

Turns one-time product prices into rental-plan pricing (monthly fee,
final totals, rental-company fee, supplier value) across fixed rental periods.
"""

__version__ = "1.0.0"
