"""
Shared fixtures: a small hand-built catalog served from memory.
"""

from datetime import datetime, timezone

import pytest

from cloud_cost.storage.cache import ExpiringCache
from cloud_cost.storage.models import (
    Architecture,
    ComputeCategory,
    ComputeInstance,
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
from cloud_cost.storage.repository import PricingRepository

LAST_UPDATED = datetime(2025, 1, 15, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced clock in seconds."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance_minutes(self, minutes: float) -> None:
        self.now += minutes * 60


def instance(provider, name, vcpus, memory_gb, hourly_price, category=ComputeCategory.GENERAL,
             architecture=Architecture.X86, status=SkuStatus.ACTIVE):
    return ComputeInstance(
        provider=provider,
        name=name,
        vcpus=vcpus,
        memory_gb=memory_gb,
        hourly_price=hourly_price,
        category=category,
        architecture=architecture,
        status=status
    )


def storage(provider, name, storage_type, tier, price):
    return StoragePricing(
        provider=provider,
        name=name,
        storage_type=storage_type,
        tier=tier,
        price_per_gb_month=price
    )


def egress(provider, free_gb, tiers):
    return EgressPricing(
        provider=provider,
        free_gb_per_month=free_gb,
        tiers=tuple(EgressTier(up_to_gb=up_to, price_per_gb=price) for up_to, price in tiers)
    )


def bundle(provider, compute, storage_options, egress_pricing, kubernetes=None, last_updated=LAST_UPDATED):
    return ProviderPricingData(
        metadata=PricingMetadata(
            provider=provider,
            last_updated=last_updated,
            source="test catalog",
            version="1",
            total_products=len(compute) + len(storage_options)
        ),
        compute=tuple(compute),
        storage=tuple(storage_options),
        egress=egress_pricing,
        kubernetes=kubernetes
    )


def build_catalog():
    """Four-provider catalog used across the test suite.

    Monthly prices: AWS m6i.xlarge 140.16, Azure D4ps_v5 112.42, GCP
    e2-standard-4 97.82, OCI E4.Flex.2 50.00.
    """
    aws, azure, gcp, oci = Provider.AWS, Provider.AZURE, Provider.GCP, Provider.OCI
    return {
        aws: bundle(
            aws,
            [
                instance(aws, "t3.medium", 2, 4, 0.0416),
                instance(aws, "m6i.xlarge", 4, 16, 0.192),
                instance(aws, "r6i.xlarge", 4, 32, 0.252, category=ComputeCategory.MEMORY),
            ],
            [
                storage(aws, "S3 Standard", StorageType.OBJECT, StorageTier.HOT, 0.023),
                storage(aws, "EBS gp3", StorageType.BLOCK, StorageTier.HOT, 0.08),
                storage(aws, "Glacier Deep Archive", StorageType.ARCHIVE, StorageTier.ARCHIVE, 0.00099),
            ],
            egress(aws, 100, [(10240, 0.09), (-1, 0.05)]),
            KubernetesPricing(aws, "EKS", 0.10, 73.00)
        ),
        azure: bundle(
            azure,
            [
                instance(azure, "Standard_D4s_v5", 4, 16, 0.192),
                instance(azure, "Standard_D4ps_v5", 4, 16, 0.154, architecture=Architecture.ARM),
            ],
            [
                storage(azure, "Blob Hot", StorageType.OBJECT, StorageTier.HOT, 0.0184),
            ],
            egress(azure, 100, [(10240, 0.087), (-1, 0.05)]),
            KubernetesPricing(azure, "AKS", 0, 0)
        ),
        gcp: bundle(
            gcp,
            [
                instance(gcp, "e2-standard-4", 4, 16, 0.134),
                instance(gcp, "n1-standard-4", 4, 15, 0.19, status=SkuStatus.DEPRECATED),
            ],
            [
                storage(gcp, "Cloud Storage Standard", StorageType.OBJECT, StorageTier.HOT, 0.02),
                storage(gcp, "PD Balanced", StorageType.BLOCK, StorageTier.HOT, 0.10),
                storage(gcp, "Cloud Storage Archive", StorageType.ARCHIVE, StorageTier.ARCHIVE, 0.0012),
            ],
            egress(gcp, 200, [(1024, 0.12), (10240, 0.11), (-1, 0.08)]),
            KubernetesPricing(gcp, "GKE", 0.10, 73.00)
        ),
        oci: bundle(
            oci,
            [
                instance(oci, "VM.Standard.E4.Flex.2", 4, 16, 0.06849315),
            ],
            [
                storage(oci, "Object Storage Standard", StorageType.OBJECT, StorageTier.HOT, 0.0255),
                storage(oci, "Block Volume Balanced", StorageType.BLOCK, StorageTier.HOT, 0.0425),
            ],
            egress(oci, 10240, [(-1, 0.0085)]),
            KubernetesPricing(oci, "OKE", 0, 0)
        ),
    }


class CountingLoader:
    """In-memory bundle loader that records how often each provider loads."""

    def __init__(self, bundles):
        self.bundles = bundles
        self.calls = []

    def __call__(self, provider):
        self.calls.append(provider)
        return self.bundles[provider]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def catalog():
    return build_catalog()


@pytest.fixture
def loader(catalog):
    return CountingLoader(catalog)


@pytest.fixture
def repository(loader, clock):
    return PricingRepository(ExpiringCache(clock=clock), loader=loader)
