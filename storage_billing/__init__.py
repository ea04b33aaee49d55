"""
Storage Billing.

Rolls storage usage ledgers into daily snapshots and turns them into
invoice and capacity figures for a storage network account.
"""

__version__ = "0.1.0"
