"""
Bundled pricing data loading.

Parses the normalized per-provider YAML catalogs shipped with the package
into pricing records. Validation is strict: a malformed bundle fails loudly
with the path of the offending field instead of yielding partial data.
"""

import logging
from datetime import date, datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Type, TypeVar

import yaml

from cloud_cost.core.errors import PricingConfigurationError
from cloud_cost.core.pricing import monthly_from_hourly
from .models import (
    Architecture,
    ComputeCategory,
    ComputeInstance,
    DatabasePricing,
    DatabaseType,
    EgressPricing,
    EgressTier,
    KubernetesPricing,
    PricingMetadata,
    Provider,
    ProviderPricingData,
    SkuStatus,
    StoragePricing,
    StorageTier,
    StorageType,
)

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Enum)

DEFAULT_BUNDLE_DIR = Path(__file__).resolve().parent.parent / "data"

REQUIRED_SECTIONS = {'metadata', 'compute', 'storage', 'egress'}
ALLOWED_SECTIONS = REQUIRED_SECTIONS | {'kubernetes', 'database'}


def bundle_path(provider: Provider, bundle_dir: Optional[Path] = None) -> Path:
    """Path of the YAML bundle for a provider."""
    return Path(bundle_dir or DEFAULT_BUNDLE_DIR) / f"{provider.value}.yaml"


def load_bundled_data(provider: Provider, bundle_dir: Optional[Path] = None) -> ProviderPricingData:
    """Load and validate the bundled catalog for one provider.

    Args:
        provider: Provider whose bundle to read
        bundle_dir: Directory holding <provider>.yaml files (defaults to the
            catalogs packaged with cloud_cost)

    Returns:
        Parsed ProviderPricingData

    Raises:
        FileNotFoundError: If the bundle file doesn't exist
        PricingConfigurationError: If the bundle is malformed
    """
    path = bundle_path(provider, bundle_dir)
    if not path.exists():
        raise FileNotFoundError(f"Pricing bundle not found: {path}")

    with open(path, 'r', encoding='utf-8') as f:
        try:
            raw = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise PricingConfigurationError(f"Invalid YAML in pricing bundle {path}: {e}")

    logger.info("Loaded %s pricing bundle from %s", provider.label, path)
    return parse_bundle(provider, raw)


def parse_bundle(provider: Provider, raw: Any) -> ProviderPricingData:
    """Build ProviderPricingData from a decoded bundle mapping.

    Raises:
        PricingConfigurationError: If the bundle is malformed
    """
    name = provider.value
    data = _require_mapping(raw, name)

    unknown = set(data.keys()) - ALLOWED_SECTIONS
    if unknown:
        raise PricingConfigurationError(f"Unknown sections in {name} bundle: {sorted(unknown)}")
    missing = REQUIRED_SECTIONS - set(data.keys())
    if missing:
        raise PricingConfigurationError(f"Missing sections in {name} bundle: {sorted(missing)}")

    try:
        metadata = _parse_metadata(provider, _require_mapping(data['metadata'], f"{name}.metadata"))
        compute = tuple(
            _parse_compute(provider, item, f"{name}.compute[{i}]")
            for i, item in enumerate(_require_list(data['compute'], f"{name}.compute"))
        )
        storage = tuple(
            _parse_storage(provider, item, f"{name}.storage[{i}]")
            for i, item in enumerate(_require_list(data['storage'], f"{name}.storage"))
        )
        egress = _parse_egress(provider, _require_mapping(data['egress'], f"{name}.egress"))

        kubernetes = None
        if data.get('kubernetes') is not None:
            kubernetes = _parse_kubernetes(
                provider, _require_mapping(data['kubernetes'], f"{name}.kubernetes")
            )

        database = tuple(
            _parse_database(provider, item, f"{name}.database[{i}]")
            for i, item in enumerate(_require_list(data.get('database') or [], f"{name}.database"))
        )
    except (KeyError, TypeError) as e:
        raise PricingConfigurationError(f"Malformed {name} bundle: {e}")
    except PricingConfigurationError:
        raise
    except ValueError as e:
        # Record-level validation from the models
        raise PricingConfigurationError(f"Invalid {name} bundle: {e}")

    return ProviderPricingData(
        metadata=metadata,
        compute=compute,
        storage=storage,
        egress=egress,
        kubernetes=kubernetes,
        database=database
    )


def _parse_metadata(provider: Provider, data: Dict) -> PricingMetadata:
    return PricingMetadata(
        provider=provider,
        last_updated=_parse_timestamp(data['last_updated'], f"{provider.value}.metadata.last_updated"),
        source=str(data['source']),
        version=str(data.get('version', '0')),
        total_products=int(data.get('total_products', 0)),
        currency=str(data.get('currency', 'USD'))
    )


def _parse_compute(provider: Provider, item: Any, path: str) -> ComputeInstance:
    data = _require_mapping(item, path)
    return ComputeInstance(
        provider=provider,
        name=str(data['name']),
        vcpus=_parse_int(data['vcpus'], f"{path}.vcpus"),
        memory_gb=float(data['memory_gb']),
        hourly_price=float(data['hourly_price']),
        category=_parse_enum(ComputeCategory, data['category'], f"{path}.category"),
        region=str(data.get('region', '')),
        display_name=data.get('display_name'),
        architecture=_optional_enum(Architecture, data.get('architecture'), f"{path}.architecture"),
        gpu_count=_optional_int(data.get('gpu_count'), f"{path}.gpu_count"),
        gpu_type=data.get('gpu_type'),
        status=_optional_enum(SkuStatus, data.get('status'), f"{path}.status"),
        notes=data.get('notes')
    )


def _parse_storage(provider: Provider, item: Any, path: str) -> StoragePricing:
    data = _require_mapping(item, path)
    return StoragePricing(
        provider=provider,
        name=str(data['name']),
        storage_type=_parse_enum(StorageType, data['type'], f"{path}.type"),
        tier=_parse_enum(StorageTier, data['tier'], f"{path}.tier"),
        price_per_gb_month=float(data['price_per_gb_month']),
        region=str(data.get('region', '')),
        redundancy=data.get('redundancy'),
        notes=data.get('notes')
    )


def _parse_egress(provider: Provider, data: Dict) -> EgressPricing:
    path = f"{provider.value}.egress"
    tiers = []
    for i, item in enumerate(_require_list(data['tiers'], f"{path}.tiers")):
        tier = _require_mapping(item, f"{path}.tiers[{i}]")
        tiers.append(EgressTier(
            up_to_gb=float(tier['up_to_gb']),
            price_per_gb=float(tier['price_per_gb'])
        ))
    return EgressPricing(
        provider=provider,
        free_gb_per_month=float(data.get('free_gb_per_month', 0)),
        tiers=tuple(tiers),
        notes=data.get('notes')
    )


def _parse_kubernetes(provider: Provider, data: Dict) -> KubernetesPricing:
    hourly = float(data['control_plane_hourly'])
    monthly = data.get('control_plane_monthly')
    return KubernetesPricing(
        provider=provider,
        name=str(data['name']),
        control_plane_hourly=hourly,
        control_plane_monthly=monthly_from_hourly(hourly) if monthly is None else float(monthly),
        worker_node_included=bool(data.get('worker_node_included', False)),
        notes=data.get('notes')
    )


def _parse_database(provider: Provider, item: Any, path: str) -> DatabasePricing:
    data = _require_mapping(item, path)
    hourly = float(data['hourly_price'])
    monthly = data.get('monthly_price')
    return DatabasePricing(
        provider=provider,
        name=str(data['name']),
        database_type=_parse_enum(DatabaseType, data['type'], f"{path}.type"),
        hourly_price=hourly,
        monthly_price=monthly_from_hourly(hourly) if monthly is None else float(monthly),
        engine=data.get('engine'),
        vcpus=_optional_int(data.get('vcpus'), f"{path}.vcpus"),
        memory_gb=None if data.get('memory_gb') is None else float(data['memory_gb']),
        notes=data.get('notes')
    )


def _parse_timestamp(value: Any, path: str) -> datetime:
    """Accept ISO-8601 strings or YAML dates; naive values are taken as UTC."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
        except ValueError:
            raise PricingConfigurationError(f"'{path}' is not an ISO-8601 timestamp: {value}")
    else:
        raise PricingConfigurationError(f"'{path}' must be a timestamp")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _parse_enum(enum_cls: Type[E], value: Any, path: str) -> E:
    try:
        return enum_cls(str(value).lower())
    except ValueError:
        valid = [member.value for member in enum_cls]
        raise PricingConfigurationError(f"'{path}' must be one of: {valid}")


def _optional_enum(enum_cls: Type[E], value: Any, path: str) -> Optional[E]:
    return None if value is None else _parse_enum(enum_cls, value, path)


def _parse_int(value: Any, path: str) -> int:
    """Accept whole numbers only."""
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not float(value).is_integer():
        raise PricingConfigurationError(f"'{path}' must be a whole number, got {value!r}")
    return int(value)


def _optional_int(value: Any, path: str) -> Optional[int]:
    return None if value is None else _parse_int(value, path)


def _require_mapping(value: Any, path: str) -> Dict:
    if not isinstance(value, dict):
        raise PricingConfigurationError(f"'{path}' must be a mapping")
    return value


def _require_list(value: Any, path: str) -> List:
    if not isinstance(value, list):
        raise PricingConfigurationError(f"'{path}' must be a list")
    return value
