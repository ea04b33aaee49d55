"""
Service adapters for Storage Billing.

Provides access to the usage, egress and plan capabilities.
"""

from .capabilities import (
    CAPABILITY_SERVICES,
    BillingServices,
    CapabilityInvoker,
    FetchFailure,
    FetchResult,
    FileInvoker,
    InvocationError,
)

__all__ = [
    "CAPABILITY_SERVICES",
    "BillingServices",
    "CapabilityInvoker",
    "FetchFailure",
    "FetchResult",
    "FileInvoker",
    "InvocationError",
]
