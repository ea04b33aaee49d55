"""
Data models for service payloads.

Typed, immutable views of the JSON-shaped results returned by the
``account/usage/get``, ``account/egress/get`` and ``plan/get`` capabilities.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union


def parse_timestamp(value: Union[str, datetime]) -> datetime:
    """Parse an ISO-8601 timestamp into an aware UTC datetime.

    Naive values are taken to be UTC.

    Raises:
        ValueError: If the value is not a valid ISO-8601 timestamp
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    else:
        raise ValueError(f"Invalid timestamp: {value!r}")

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_day(value: Union[str, date, datetime]) -> date:
    """Parse a calendar day, taking the UTC date of full timestamps."""
    if isinstance(value, datetime):
        return parse_timestamp(value).date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and len(value.strip()) == 10:
        return date.fromisoformat(value.strip())
    return parse_timestamp(value).date()


def _as_int(value: Any) -> int:
    """Coerce a numeric payload value to int, treating junk as 0."""
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return 0


def _as_mapping(value: Any, member: str) -> Mapping[str, Any]:
    """Return an object member, treating an absent one as empty.

    Raises:
        ValueError: If the member is present but not an object
    """
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValueError(f"'{member}' must be an object, got {type(value).__name__}")
    return value


def _as_list(value: Any, member: str) -> Tuple[Any, ...]:
    """Return an array member as a tuple, treating an absent one as empty.

    Raises:
        ValueError: If the member is present but not an array
    """
    if value is None:
        return ()
    if not isinstance(value, (list, tuple)):
        raise ValueError(f"'{member}' must be an array, got {type(value).__name__}")
    return tuple(value)


def _parse_cause(value: Any) -> str:
    # CID links arrive either as plain strings or as {"/": "<cid>"}
    if isinstance(value, Mapping):
        return str(value.get("/", ""))
    return "" if value is None else str(value)


@dataclass(frozen=True)
class UsageEvent:
    """One recorded change in stored bytes; delta is negative on deletion."""
    cause: str
    delta: int
    receipt_at: datetime

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "UsageEvent":
        data = _as_mapping(data, "event")
        return cls(
            cause=_parse_cause(data.get("cause")),
            delta=_as_int(data.get("delta")),
            receipt_at=parse_timestamp(data["receiptAt"]),
        )


@dataclass(frozen=True)
class ProviderUsage:
    """Usage of one space at one storage provider within the query period."""
    space: str
    provider: str
    period_from: Optional[datetime]
    period_to: Optional[datetime]
    initial_size: int
    final_size: int
    events: Tuple[UsageEvent, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], provider: str = "") -> "ProviderUsage":
        data = _as_mapping(data, "provider")
        period = _as_mapping(data.get("period"), "period")
        size = _as_mapping(data.get("size"), "size")
        return cls(
            space=str(data.get("space", "")),
            provider=str(data.get("provider", provider)),
            period_from=parse_timestamp(period["from"]) if period.get("from") else None,
            period_to=parse_timestamp(period["to"]) if period.get("to") else None,
            initial_size=_as_int(size.get("initial")),
            final_size=_as_int(size.get("final")),
            events=tuple(UsageEvent.from_dict(e) for e in _as_list(data.get("events"), "events")),
        )


@dataclass(frozen=True)
class SpaceUsage:
    """Usage of one space, keyed by provider DID."""
    total: int
    providers: Mapping[str, ProviderUsage] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SpaceUsage":
        data = _as_mapping(data, "space")
        providers = _as_mapping(data.get("providers"), "providers")
        return cls(
            total=_as_int(data.get("total")),
            providers={
                did: ProviderUsage.from_dict(usage, provider=did)
                for did, usage in providers.items()
            },
        )


@dataclass(frozen=True)
class AccountUsage:
    """Root usage payload for an account, keyed by space DID.

    Covers the service's default period, not the period chosen for billing.
    """
    total: int
    spaces: Mapping[str, SpaceUsage] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "AccountUsage":
        data = _as_mapping(data, "usage")
        spaces = _as_mapping(data.get("spaces"), "spaces")
        return cls(
            total=_as_int(data.get("total")),
            spaces={did: SpaceUsage.from_dict(space) for did, space in spaces.items()},
        )

    def provider_usages(self) -> List[ProviderUsage]:
        """All (space, provider) usage records, in payload order."""
        return [
            usage
            for space in self.spaces.values()
            for usage in space.providers.values()
        ]


@dataclass(frozen=True)
class DailySnapshot:
    """Cumulative bytes as of the end of a calendar day."""
    date: date
    bytes: float


@dataclass(frozen=True)
class DailyStat:
    """Egress served on one calendar day."""
    date: date
    egress: int

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DailyStat":
        data = _as_mapping(data, "dailyStats entry")
        return cls(date=parse_day(data["date"]), egress=_as_int(data.get("egress")))


@dataclass(frozen=True)
class SpaceEgress:
    """Egress of one space with its daily breakdown."""
    total: int
    daily_stats: Tuple[DailyStat, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SpaceEgress":
        data = _as_mapping(data, "space")
        return cls(
            total=_as_int(data.get("total")),
            daily_stats=tuple(
                DailyStat.from_dict(s) for s in _as_list(data.get("dailyStats"), "dailyStats")
            ),
        )


@dataclass(frozen=True)
class AccountEgress:
    """Egress payload for an account, keyed by space DID."""
    total: int
    spaces: Mapping[str, SpaceEgress] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "AccountEgress":
        data = _as_mapping(data, "egress")
        spaces = _as_mapping(data.get("spaces"), "spaces")
        return cls(
            total=_as_int(data.get("total")),
            spaces={did: SpaceEgress.from_dict(space) for did, space in spaces.items()},
        )


@dataclass(frozen=True)
class Plan:
    """Account plan. A limit of 0 means unlimited capacity."""
    limit: int = 0

    @property
    def unlimited(self) -> bool:
        return self.limit == 0

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "Plan":
        return cls(limit=_as_int(_as_mapping(data, "plan").get("limit")))


def as_plain_dict(snapshots: List[DailySnapshot]) -> List[Dict[str, Any]]:
    """Serialize snapshots to JSON-friendly dicts."""
    return [{"date": s.date.isoformat(), "bytes": s.bytes} for s in snapshots]
