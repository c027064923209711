"""
Repository pattern for pricing data access.

Reads provider bundles through an explicitly owned expiring cache and
exposes the merged, multi-provider record sets the comparison engine queries.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Union

from .bundles import load_bundled_data
from .cache import CacheStats, ExpiringCache
from .models import (
    ALL_PROVIDERS,
    ComputeInstance,
    DatabasePricing,
    DataFreshness,
    EgressPricing,
    KubernetesPricing,
    PricingMetadata,
    Provider,
    ProviderPricingData,
    StoragePricing,
    validate_egress_pricing,
)

logger = logging.getLogger(__name__)

BundleLoader = Callable[[Provider], ProviderPricingData]

ALL_COMPUTE_KEY = "all_compute_instances"
ALL_STORAGE_KEY = "all_storage_options"


def provider_cache_key(provider: Provider) -> str:
    """Cache key for a provider bundle, e.g. AWS_PRICING."""
    return f"{provider.label}_PRICING"


class PricingRepository:
    """Repository for normalized provider pricing.

    The repository never mutates the records it hands out; merged lists are
    new tuples built from the per-provider bundles.
    """

    def __init__(
        self,
        cache: ExpiringCache,
        loader: Optional[BundleLoader] = None,
        provider_ttl_minutes: int = 60 * 24,
        merged_ttl_minutes: int = 60,
        stale_after_days: int = 30
    ):
        """Initialize the repository.

        Args:
            cache: Cache instance owned by the caller
            loader: Callable returning the bundle for a provider (defaults to
                the packaged YAML catalogs)
            provider_ttl_minutes: TTL for per-provider bundles
            merged_ttl_minutes: TTL for merged cross-provider lists
            stale_after_days: Age after which a bundle is reported stale
        """
        self.cache = cache
        self.loader = loader or load_bundled_data
        self.provider_ttl_minutes = provider_ttl_minutes
        self.merged_ttl_minutes = merged_ttl_minutes
        self.stale_after_days = stale_after_days

    def get_provider_data(self, provider: Union[Provider, str]) -> ProviderPricingData:
        """Get the pricing bundle for one provider.

        Raises:
            UnknownProviderError: If the provider is not supported
        """
        resolved = Provider.parse(provider)
        return self.cache.get_or_load(
            provider_cache_key(resolved),
            lambda: self._load(resolved),
            self.provider_ttl_minutes
        )

    def get_all_provider_data(self) -> Dict[Provider, ProviderPricingData]:
        """Get every provider bundle in canonical provider order."""
        return {provider: self.get_provider_data(provider) for provider in ALL_PROVIDERS}

    def get_all_compute_instances(self) -> List[ComputeInstance]:
        """Get compute instances across all providers (aws, azure, gcp, oci order)."""
        instances = self.cache.get_or_load(
            ALL_COMPUTE_KEY,
            lambda: tuple(
                instance
                for data in self.get_all_provider_data().values()
                for instance in data.compute
            ),
            self.merged_ttl_minutes
        )
        return list(instances)

    def get_all_storage_options(self) -> List[StoragePricing]:
        """Get storage options across all providers."""
        options = self.cache.get_or_load(
            ALL_STORAGE_KEY,
            lambda: tuple(
                option
                for data in self.get_all_provider_data().values()
                for option in data.storage
            ),
            self.merged_ttl_minutes
        )
        return list(options)

    def get_all_egress_pricing(self) -> List[EgressPricing]:
        """Get egress pricing for every provider."""
        return [data.egress for data in self.get_all_provider_data().values()]

    def get_all_kubernetes_pricing(self) -> Dict[Provider, Optional[KubernetesPricing]]:
        """Get managed Kubernetes pricing per provider (None where not offered)."""
        return {provider: data.kubernetes for provider, data in self.get_all_provider_data().items()}

    def get_all_database_pricing(self) -> Dict[Provider, List[DatabasePricing]]:
        """Get managed database pricing per provider."""
        return {provider: list(data.database) for provider, data in self.get_all_provider_data().items()}

    def get_provider_metadata(self, provider: Union[Provider, str]) -> PricingMetadata:
        """Get bundle metadata for a provider."""
        return self.get_provider_data(provider).metadata

    def get_data_freshness(self, now: Optional[datetime] = None) -> List[DataFreshness]:
        """Report the age of each provider bundle.

        Args:
            now: Reference time (defaults to the current UTC time)
        """
        now = now or datetime.now(timezone.utc)
        report = []
        for provider, data in self.get_all_provider_data().items():
            age = now - data.metadata.last_updated
            report.append(DataFreshness(
                provider=provider,
                last_updated=data.metadata.last_updated,
                age_in_days=max(age.days, 0),
                is_stale=age > timedelta(days=self.stale_after_days),
                source=data.metadata.source
            ))
        return report

    def refresh(self) -> None:
        """Drop every cached bundle so the next query reloads."""
        self.cache.clear()
        logger.info("Pricing cache cleared")

    def cache_stats(self) -> CacheStats:
        return self.cache.stats()

    def _load(self, provider: Provider) -> ProviderPricingData:
        data = self.loader(provider)
        for problem in validate_egress_pricing(data.egress):
            logger.warning("Pricing data problem: %s", problem)
        return data
