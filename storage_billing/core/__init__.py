"""
Core modules for Storage Billing.

This package contains the pure computations: unit conversion, usage
roll-up, period selection, pricing, capacity and report assembly.
"""
