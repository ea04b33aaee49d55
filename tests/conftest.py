"""
Shared payload fixtures.

Payloads use the wire shapes returned by the capabilities (camelCase keys,
ISO-8601 timestamps, CID links).
"""

import json

import pytest

GIB = 1024 ** 3
TIB = 1024 ** 4


@pytest.fixture
def usage_payload():
    """Two spaces at one provider.

    Daily roll-up: Jan 5 -> 1 TiB, Jan 20 -> 1 TiB + 1 GiB, Feb 10 -> 1 TiB.
    """
    return {
        "total": TIB,
        "spaces": {
            "did:key:space-a": {
                "total": TIB,
                "providers": {
                    "did:web:provider-1": {
                        "space": "did:key:space-a",
                        "provider": "did:web:provider-1",
                        "period": {"from": "2024-01-01T00:00:00Z", "to": "2024-02-15T00:00:00Z"},
                        "size": {"initial": TIB // 2, "final": TIB},
                        "events": [
                            {"cause": {"/": "bafy-a1"}, "delta": TIB // 4, "receiptAt": "2024-01-05T10:00:00Z"},
                            {"cause": {"/": "bafy-a2"}, "delta": TIB // 4, "receiptAt": "2024-01-05T18:00:00Z"},
                        ],
                    }
                },
            },
            "did:key:space-b": {
                "total": 0,
                "providers": {
                    "did:web:provider-1": {
                        "space": "did:key:space-b",
                        "provider": "did:web:provider-1",
                        "period": {"from": "2024-01-01T00:00:00Z", "to": "2024-02-15T00:00:00Z"},
                        "size": {"initial": 0, "final": 0},
                        "events": [
                            {"cause": "bafy-b1", "delta": GIB, "receiptAt": "2024-01-20T09:00:00Z"},
                            {"cause": "bafy-b2", "delta": -GIB, "receiptAt": "2024-02-10T09:00:00Z"},
                        ],
                    }
                },
            },
        },
    }


@pytest.fixture
def egress_payload():
    """1 TiB of egress over Feb 1-2, split across two spaces."""
    return {
        "total": TIB,
        "spaces": {
            "did:key:space-a": {
                "total": TIB // 2,
                "dailyStats": [
                    {"date": "2024-02-01T00:00:00.000Z", "egress": TIB // 4},
                    {"date": "2024-02-02", "egress": TIB // 4},
                ],
            },
            "did:key:space-b": {
                "total": TIB // 2,
                "dailyStats": [
                    {"date": "2024-02-02", "egress": TIB // 2},
                ],
            },
        },
    }


@pytest.fixture
def plan_payload():
    return {"limit": 2 * TIB}


@pytest.fixture
def data_dir(tmp_path, usage_payload, egress_payload, plan_payload):
    """Directory of recorded capability results for the file invoker."""
    (tmp_path / "account-usage-get.json").write_text(json.dumps(usage_payload), encoding="utf-8")
    (tmp_path / "account-egress-get.json").write_text(json.dumps({"ok": egress_payload}), encoding="utf-8")
    (tmp_path / "plan-get.json").write_text(json.dumps(plan_payload), encoding="utf-8")
    return tmp_path
