"""
Programmatic client for pricing queries.

Wraps the repository, comparison engine and workload calculator behind one
object whose methods return plain, JSON-ready dictionaries. This is the
error boundary: failures come back as an error payload instead of raising.
"""

import dataclasses
import functools
import logging
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Union

from ..config.loader import Settings, default_settings
from ..core import calculator, compare
from ..core.errors import CloudCostError, NotFoundError
from ..core.presets import get_available_presets
from ..core.workload import WorkloadSpec
from ..storage.bundles import load_bundled_data
from ..storage.cache import ExpiringCache
from ..storage.models import Provider
from ..storage.repository import PricingRepository

logger = logging.getLogger(__name__)

Payload = Dict[str, Any]


def to_payload(value: Any) -> Any:
    """Convert records to plain data: enums as values, datetimes as ISO-8601."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_payload(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, Mapping):
        return {to_payload(k): to_payload(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_payload(item) for item in value]
    return value


def error_payload(error: Exception) -> Payload:
    """Structured error returned to callers."""
    valid_options = error.valid_options if isinstance(error, NotFoundError) else []
    return {
        "error": {
            "type": type(error).__name__,
            "message": str(error),
            "valid_options": list(valid_options),
        }
    }


def is_error(payload: Payload) -> bool:
    return "error" in payload


def _boundary(method: Callable[..., Any]) -> Callable[..., Payload]:
    """Return the method's result as a payload, or an error payload on failure."""
    @functools.wraps(method)
    def wrapper(*args, **kwargs) -> Payload:
        try:
            return to_payload(method(*args, **kwargs))
        except (CloudCostError, ValueError, FileNotFoundError) as e:
            logger.info("%s failed: %s", method.__name__, e)
            return error_payload(e)
    return wrapper


def _parse_providers(providers: Optional[Sequence[Union[Provider, str]]]):
    if providers is None:
        return None
    return tuple(Provider.parse(p) for p in providers)


def _workload(spec: Union[WorkloadSpec, Mapping[str, Any], None]) -> WorkloadSpec:
    if isinstance(spec, WorkloadSpec):
        return spec
    return WorkloadSpec.from_dict(spec)


class CloudCostClient:
    """Client for cross-cloud cost comparison.

    Every public method returns a dictionary. On failure the dictionary has
    a single "error" key holding type, message and valid_options.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        repository: Optional[PricingRepository] = None
    ):
        """Initialize the client.

        Args:
            settings: Application settings (defaults used when omitted)
            repository: Pre-built repository, mainly for tests
        """
        self.settings = settings or default_settings()
        self.repository = repository or self._build_repository(self.settings)

    @staticmethod
    def _build_repository(settings: Settings) -> PricingRepository:
        cache = ExpiringCache(default_ttl_minutes=settings.cache.default_ttl_minutes)
        bundle_dir = settings.data.bundle_dir
        return PricingRepository(
            cache,
            loader=lambda provider: load_bundled_data(provider, bundle_dir),
            provider_ttl_minutes=settings.cache.provider_ttl_minutes,
            merged_ttl_minutes=settings.cache.merged_ttl_minutes,
            stale_after_days=settings.data.stale_after_days
        )

    @_boundary
    def compare_compute(
        self,
        vcpus: Optional[float] = None,
        memory_gb: Optional[float] = None,
        category: Optional[str] = None,
        exclude_deprecated: bool = False,
        providers: Optional[Sequence[str]] = None
    ):
        """Compare compute instances for a requested shape."""
        query = compare.ComputeQuery(
            vcpus=vcpus, memory_gb=memory_gb, category=category, exclude_deprecated=exclude_deprecated
        )
        return compare.compare_compute(query, self.repository, _parse_providers(providers))

    @_boundary
    def find_cheapest_compute(
        self,
        vcpus: Optional[float] = None,
        memory_gb: Optional[float] = None,
        category: Optional[str] = None
    ):
        """Cheapest matching instance overall and per provider."""
        query = compare.ComputeQuery(vcpus=vcpus, memory_gb=memory_gb, category=category)
        return compare.find_cheapest_compute(query, self.repository)

    @_boundary
    def compare_storage(
        self,
        size_gb: float,
        tier: Optional[str] = None,
        storage_type: Optional[str] = None,
        providers: Optional[Sequence[str]] = None
    ):
        """Rank storage classes for a size."""
        query = compare.StorageQuery(size_gb=size_gb, tier=tier, storage_type=storage_type)
        return compare.compare_storage(query, self.repository, _parse_providers(providers))

    @_boundary
    def storage_summary(self, size_gb: float):
        return compare.storage_summary(size_gb, self.repository)

    @_boundary
    def compare_egress(self, monthly_gb: float, providers: Optional[Sequence[str]] = None):
        """Compare the monthly egress bill across providers."""
        return compare.compare_egress(
            compare.EgressQuery(monthly_gb=monthly_gb), self.repository, _parse_providers(providers)
        )

    @_boundary
    def compare_kubernetes(
        self,
        node_count: int,
        node_vcpus: float,
        node_memory_gb: float,
        providers: Optional[Sequence[str]] = None
    ):
        """Compare managed Kubernetes cluster cost."""
        query = compare.KubernetesQuery(
            node_count=node_count, node_vcpus=node_vcpus, node_memory_gb=node_memory_gb
        )
        return compare.compare_kubernetes(query, self.repository, _parse_providers(providers))

    @_boundary
    def calculate_workload_cost(self, spec: Union[WorkloadSpec, Mapping[str, Any], None]):
        """Price a workload on every provider."""
        return calculator.calculate_workload_cost(_workload(spec), self.repository)

    @_boundary
    def quick_estimate(self, preset: str):
        return calculator.quick_estimate(preset, self.repository)

    @_boundary
    def list_presets(self):
        return {
            "presets": [
                {
                    "name": preset.name,
                    "description": preset.description,
                    "summary": preset.summary,
                    "category": preset.category,
                }
                for preset in get_available_presets()
            ]
        }

    @_boundary
    def estimate_migration_savings(
        self,
        spec: Union[WorkloadSpec, Mapping[str, Any], None],
        current_provider: str,
        target_provider: Optional[str] = None
    ):
        """Estimate savings from moving a workload to another provider."""
        return calculator.estimate_migration_savings(
            _workload(spec), current_provider, self.repository, target_provider
        )

    @_boundary
    def data_freshness(self):
        return {"providers": self.repository.get_data_freshness()}

    @_boundary
    def provider_details(self, provider: str):
        """Full pricing bundle for one provider."""
        data = self.repository.get_provider_data(provider)
        return {
            "provider": data.provider,
            "metadata": data.metadata,
            "compute": data.compute,
            "storage": data.storage,
            "egress": data.egress,
            "kubernetes": data.kubernetes,
            "database": data.database,
        }

    @_boundary
    def cache_stats(self):
        return self.repository.cache_stats()

    @_boundary
    def refresh(self):
        self.repository.refresh()
        return {"refreshed": True}
