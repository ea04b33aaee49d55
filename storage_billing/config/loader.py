"""
Configuration management and loading.

Handles pricing and service endpoint settings from YAML and environment
variables.
"""

import math
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from storage_billing.core.pricing import PriceConfig

DEFAULT_STORAGE_USD_PER_TIB = 5.99
DEFAULT_EGRESS_USD_PER_TIB = 10.0

DEFAULT_SERVICES = {
    "upload": ("https://up.forge.storacha.network", "did:web:up.forge.storacha.network"),
    "etracker": ("https://etracker.forge.storacha.network", "did:web:etracker.forge.storacha.network"),
}

PRICE_ENV_VARS = {
    "storage_usd_per_tib": "STORAGE_USD_PER_TIB",
    "egress_usd_per_tib": "EGRESS_USD_PER_TIB",
}


@dataclass(frozen=True)
class ServiceEndpoint:
    """URL and DID of a remote capability service."""
    url: str
    did: str

    def __post_init__(self):
        """Validate endpoint values."""
        if not self.url.startswith(("http://", "https://")):
            raise ValueError(f"service url must be http(s): {self.url}")
        if not self.did.startswith("did:"):
            raise ValueError(f"service did must start with 'did:': {self.did}")


@dataclass(frozen=True)
class BillingConfig:
    """Complete billing configuration."""
    prices: PriceConfig
    services: Dict[str, ServiceEndpoint]

    def get_service(self, name: str) -> ServiceEndpoint:
        """Get an endpoint by name ("upload" or "etracker")."""
        if name not in self.services:
            raise ValueError(f"Unknown service: {name}")
        return self.services[name]


def load_billing_config(
    path: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
) -> BillingConfig:
    """Load and validate billing configuration.

    Values come from built-in defaults, then the YAML file (if given), then
    environment variables. Prices are validated here so the pricing
    functions never see a missing or non-numeric rate.

    Args:
        path: Optional path to a YAML configuration file
        env: Environment mapping (defaults to ``os.environ``)

    Returns:
        Validated BillingConfig object

    Raises:
        FileNotFoundError: If a config path is given but doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    env = os.environ if env is None else env
    raw_config = _read_yaml(path) if path else {}

    allowed_top_keys = {'pricing', 'services'}
    unknown_keys = set(raw_config.keys()) - allowed_top_keys
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {unknown_keys}")

    prices = _parse_prices(raw_config.get('pricing') or {}, env)
    services = _parse_services(raw_config.get('services') or {}, env)

    return BillingConfig(prices=prices, services=services)


def _read_yaml(path: str) -> Dict[str, Any]:
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Billing config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

    if raw_config is None:
        return {}
    if not isinstance(raw_config, dict):
        raise ValueError("Configuration must be a mapping")
    return raw_config


def _parse_prices(data: Dict, env: Mapping[str, str]) -> PriceConfig:
    """Parse and validate the pricing section.

    Args:
        data: Pricing configuration data
        env: Environment mapping for overrides

    Returns:
        Validated PriceConfig

    Raises:
        ValueError: If a price is unknown, non-numeric, negative or not finite
    """
    if not isinstance(data, dict):
        raise ValueError("'pricing' must be a dictionary")

    unknown_keys = set(data.keys()) - set(PRICE_ENV_VARS)
    if unknown_keys:
        raise ValueError(f"Unknown keys in pricing: {unknown_keys}")

    defaults = {
        'storage_usd_per_tib': DEFAULT_STORAGE_USD_PER_TIB,
        'egress_usd_per_tib': DEFAULT_EGRESS_USD_PER_TIB,
    }

    values = {}
    for key, env_var in PRICE_ENV_VARS.items():
        if env.get(env_var):
            values[key] = _parse_price(env[env_var], env_var)
        elif key in data:
            values[key] = _parse_price(data[key], f"pricing.{key}")
        else:
            values[key] = defaults[key]

    return PriceConfig(**values)


def _parse_price(value: Any, source: str) -> float:
    if isinstance(value, bool):
        raise ValueError(f"'{source}' must be a number")
    try:
        price = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"'{source}' must be a number, got {value!r}")
    if not math.isfinite(price):
        raise ValueError(f"'{source}' must be finite")
    if price < 0:
        raise ValueError(f"'{source}' must be >= 0")
    return price


def _parse_services(data: Dict, env: Mapping[str, str]) -> Dict[str, ServiceEndpoint]:
    """Parse the services section, applying ``<NAME>_SERVICE_URL`` and
    ``<NAME>_SERVICE_DID`` environment overrides."""
    if not isinstance(data, dict):
        raise ValueError("'services' must be a dictionary")

    unknown_services = set(data.keys()) - set(DEFAULT_SERVICES)
    if unknown_services:
        raise ValueError(f"Unknown services: {unknown_services}")

    services = {}
    for name, (default_url, default_did) in DEFAULT_SERVICES.items():
        entry = data.get(name) or {}
        if not isinstance(entry, dict):
            raise ValueError(f"Service '{name}' must be a dictionary")

        unknown_keys = set(entry.keys()) - {'url', 'did'}
        if unknown_keys:
            raise ValueError(f"Unknown keys in services.{name}: {unknown_keys}")

        prefix = name.upper()
        services[name] = ServiceEndpoint(
            url=env.get(f"{prefix}_SERVICE_URL") or str(entry.get('url', default_url)),
            did=env.get(f"{prefix}_SERVICE_DID") or str(entry.get('did', default_did)),
        )

    return services
