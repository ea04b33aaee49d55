"""
Capability fetch adapters.

Invokes the account/usage, account/egress and plan capabilities through an
injected invoker and returns an explicit result instead of raising. Signing
and transport belong to the invoker; this module only shapes requests and
interprets receipts.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Generic, Mapping, Optional, TypeVar

from storage_billing.config.loader import ServiceEndpoint
from storage_billing.core.periods import Period
from storage_billing.payloads.models import AccountEgress, AccountUsage, Plan

logger = logging.getLogger(__name__)

USAGE_GET = "account/usage/get"
EGRESS_GET = "account/egress/get"
PLAN_GET = "plan/get"

# Configured service name handling each capability
CAPABILITY_SERVICES = {
    USAGE_GET: "upload",
    PLAN_GET: "upload",
    EGRESS_GET: "etracker",
}

T = TypeVar("T")


class InvocationError(Exception):
    """Raised by invokers when a capability could not be delivered."""
    def __init__(self, message: str, name: str = "InvocationError"):
        super().__init__(message)
        self.name = name


@dataclass(frozen=True)
class FetchFailure:
    """Typed failure of a capability invocation.

    ``service`` is the URL of the service the capability was routed to,
    when one is configured.
    """
    capability: str
    name: str
    message: str
    service: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.name}: {self.message}"


@dataclass(frozen=True)
class FetchResult(Generic[T]):
    """Either a decoded payload or a failure; ``ok`` may be None with no
    failure when nothing was fetched (e.g. an invalid period)."""
    ok: Optional[T] = None
    error: Optional[FetchFailure] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


class CapabilityInvoker:
    """Interface for delivering a capability invocation to a service.

    ``invoke`` returns the receipt's ``out`` member: a mapping with either
    an ``ok`` or an ``error`` key. ``audience`` is the DID of the service
    the invocation is addressed to, when known.
    """

    def invoke(
        self,
        can: str,
        resource: str,
        nb: Optional[Mapping[str, Any]] = None,
        audience: Optional[str] = None,
    ) -> Mapping[str, Any]:
        raise NotImplementedError


class FileInvoker(CapabilityInvoker):
    """Serves recorded capability results from a directory.

    ``account/usage/get`` is read from ``account-usage-get.json`` and so on.
    A missing file is reported as a ``NotFound`` receipt error.
    """

    def __init__(self, data_dir: str):
        self.data_dir = Path(data_dir)

    def path_for(self, can: str) -> Path:
        return self.data_dir / f"{can.replace('/', '-')}.json"

    def invoke(
        self,
        can: str,
        resource: str,
        nb: Optional[Mapping[str, Any]] = None,
        audience: Optional[str] = None,
    ) -> Mapping[str, Any]:
        path = self.path_for(can)
        if not path.exists():
            return {"error": {"name": "NotFound", "message": f"No recorded result for {can} at {path}"}}

        try:
            with open(path, "r", encoding="utf-8") as f:
                payload = json.load(f)
        except json.JSONDecodeError as e:
            raise InvocationError(f"Invalid JSON in {path}: {e}", name="DecodeError")
        except (OSError, UnicodeDecodeError) as e:
            raise InvocationError(f"Could not read {path}: {e}", name="ReadError")

        # Files may hold a full receipt out ({"ok": ...}) or a bare payload
        if isinstance(payload, dict) and ("ok" in payload or "error" in payload):
            return payload
        return {"ok": payload}


class BillingServices:
    """Fetches usage, egress and plan payloads for an account.

    Usage and plan live on the upload service, egress on the egress tracker.
    The same invoker may serve both. When ``endpoints`` are given, each
    invocation is addressed to the DID of the service its capability is
    routed to.
    """

    def __init__(
        self,
        upload: CapabilityInvoker,
        etracker: Optional[CapabilityInvoker] = None,
        endpoints: Optional[Mapping[str, ServiceEndpoint]] = None,
    ):
        self.upload = upload
        self.etracker = etracker or upload
        self.endpoints = dict(endpoints or {})

    def endpoint_for(self, can: str) -> Optional[ServiceEndpoint]:
        """Endpoint of the service that handles ``can``, if configured."""
        return self.endpoints.get(CAPABILITY_SERVICES[can])

    def get_account_usage(self, account: str) -> FetchResult[AccountUsage]:
        """Invoke ``account/usage/get`` for the service's default period."""
        return self._fetch(self.upload, USAGE_GET, account, None, AccountUsage.from_dict)

    def get_account_egress(self, account: str, period: Optional[Period] = None) -> FetchResult[AccountEgress]:
        """Invoke ``account/egress/get``, scoped to ``period`` when given.

        An invalid period is not sent; the result is empty.
        """
        if period is not None and not period.is_valid:
            logger.debug("Skipping %s for %s: invalid period %s", EGRESS_GET, account, period)
            return FetchResult()

        nb = {"period": period.to_query()} if period is not None else None
        return self._fetch(self.etracker, EGRESS_GET, account, nb, AccountEgress.from_dict)

    def get_plan(self, account: str) -> FetchResult[Plan]:
        """Invoke ``plan/get``."""
        return self._fetch(self.upload, PLAN_GET, account, None, Plan.from_dict)

    def _fetch(
        self,
        invoker: CapabilityInvoker,
        can: str,
        account: str,
        nb: Optional[Dict[str, Any]],
        decode: Callable[[Mapping[str, Any]], T],
    ) -> FetchResult[T]:
        endpoint = self.endpoint_for(can)
        service = endpoint.url if endpoint is not None else None
        audience = endpoint.did if endpoint is not None else None

        def failure(name: str, message: str) -> FetchResult[T]:
            return FetchResult(error=FetchFailure(capability=can, name=name, message=message, service=service))

        logger.debug("Invoking %s on %s with %s nb=%s", can, service or "local invoker", account, nb)
        try:
            out = invoker.invoke(can, account, nb, audience=audience)
        except InvocationError as e:
            logger.warning("%s failed for %s: %s", can, account, e)
            return failure(e.name, str(e))

        if not isinstance(out, Mapping):
            logger.warning("%s returned a malformed receipt for %s: %r", can, account, out)
            return failure("MalformedReceipt", f"Receipt must be an object, got {type(out).__name__}")

        # Service errors come back in the receipt, not as exceptions
        if out.get("error"):
            error = out["error"]
            if not isinstance(error, Mapping):
                error = {"message": str(error)}
            result = failure(
                error.get("name") or "UnknownError",
                error.get("message") or f"Failed to fetch {can}",
            )
            logger.warning("%s returned an error for %s: %s", can, account, result.error)
            return result

        try:
            payload = decode(out.get("ok"))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("%s returned a malformed payload for %s: %s", can, account, e)
            return failure("MalformedPayload", str(e))

        logger.debug("%s succeeded for %s", can, account)
        return FetchResult(ok=payload)
