"""
Data models for normalized pricing records.

Defines the provider-independent schema every catalog is mapped into.
Records are immutable; use dataclasses.replace to derive an updated copy.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple, Union

from cloud_cost.core.errors import UnknownProviderError
from cloud_cost.core.pricing import monthly_from_hourly

# Egress tier ceiling marking the overflow tier
UNBOUNDED_TIER = -1


class Provider(Enum):
    """Supported cloud providers, in canonical merge order."""
    AWS = "aws"
    AZURE = "azure"
    GCP = "gcp"
    OCI = "oci"

    @property
    def label(self) -> str:
        """Display label, e.g. AWS."""
        return self.value.upper()

    @classmethod
    def parse(cls, value: Union["Provider", str]) -> "Provider":
        """Resolve a provider from an enum member or a case-insensitive name.

        Raises:
            UnknownProviderError: If the name is not a supported provider
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise UnknownProviderError(str(value), [p.value for p in cls])


ALL_PROVIDERS: Tuple[Provider, ...] = tuple(Provider)

# Fixed reference provider for savings narratives
BASELINE_PROVIDER = Provider.AWS


class ComputeCategory(Enum):
    """Instance family category. ARM is an architecture alias, not a family."""
    GENERAL = "general"
    COMPUTE = "compute"
    MEMORY = "memory"
    STORAGE = "storage"
    GPU = "gpu"
    ARM = "arm"


class Architecture(Enum):
    """CPU architecture."""
    X86 = "x86"
    ARM = "arm"


class SkuStatus(Enum):
    """Lifecycle status of a purchasable SKU."""
    ACTIVE = "active"
    LEGACY = "legacy"
    DEPRECATED = "deprecated"
    PREVIEW = "preview"


class StorageType(Enum):
    """Storage service type."""
    OBJECT = "object"
    BLOCK = "block"
    FILE = "file"
    ARCHIVE = "archive"


class StorageTier(Enum):
    """Storage access tier."""
    HOT = "hot"
    COOL = "cool"
    COLD = "cold"
    ARCHIVE = "archive"


class DatabaseType(Enum):
    """Managed database family."""
    RELATIONAL = "relational"
    NOSQL = "nosql"
    SERVERLESS = "serverless"


@dataclass(frozen=True)
class PricingMetadata:
    """Provenance of a provider bundle."""
    provider: Provider
    last_updated: datetime
    source: str
    version: str
    total_products: int
    currency: str = "USD"


@dataclass(frozen=True)
class ComputeInstance:
    """A purchasable compute shape with on-demand pricing.

    monthly_price is derived from hourly_price on every construction and
    cannot be passed in.
    """
    provider: Provider
    name: str
    vcpus: int
    memory_gb: float
    hourly_price: float
    category: ComputeCategory
    region: str = ""
    display_name: Optional[str] = None
    architecture: Optional[Architecture] = None
    gpu_count: Optional[int] = None
    gpu_type: Optional[str] = None
    status: Optional[SkuStatus] = None
    notes: Optional[str] = None
    monthly_price: float = field(init=False)

    def __post_init__(self):
        """Validate shape values and derive the monthly price."""
        if self.vcpus <= 0:
            raise ValueError(f"{self.name}: vcpus must be > 0")
        if self.memory_gb <= 0:
            raise ValueError(f"{self.name}: memory_gb must be > 0")
        if self.hourly_price < 0:
            raise ValueError(f"{self.name}: hourly_price cannot be negative")
        if self.gpu_count is not None and self.gpu_count < 0:
            raise ValueError(f"{self.name}: gpu_count cannot be negative")
        object.__setattr__(self, "monthly_price", monthly_from_hourly(self.hourly_price))


@dataclass(frozen=True)
class StoragePricing:
    """Per-GB monthly price of a storage class."""
    provider: Provider
    name: str
    storage_type: StorageType
    tier: StorageTier
    price_per_gb_month: float
    region: str = ""
    redundancy: Optional[str] = None
    notes: Optional[str] = None

    def __post_init__(self):
        if self.price_per_gb_month < 0:
            raise ValueError(f"{self.name}: price_per_gb_month cannot be negative")


@dataclass(frozen=True)
class EgressTier:
    """Cumulative GB band with its own per-GB price."""
    up_to_gb: float  # UNBOUNDED_TIER for the overflow tier
    price_per_gb: float

    @property
    def unbounded(self) -> bool:
        return self.up_to_gb == UNBOUNDED_TIER


@dataclass(frozen=True)
class EgressPricing:
    """Internet egress pricing with a free monthly allowance.

    Tier ceilings are cumulative and include the free allowance. Tiers must
    ascend, and the overflow tier, if present, must be last.
    """
    provider: Provider
    free_gb_per_month: float
    tiers: Tuple[EgressTier, ...]
    notes: Optional[str] = None

    def __post_init__(self):
        """Validate tier ordering."""
        if self.free_gb_per_month < 0:
            raise ValueError(f"{self.provider.value}: free_gb_per_month cannot be negative")
        object.__setattr__(self, "tiers", tuple(self.tiers))

        previous = None
        for index, tier in enumerate(self.tiers):
            if tier.price_per_gb < 0:
                raise ValueError(f"{self.provider.value}: tier {index} price cannot be negative")
            if tier.unbounded:
                if index != len(self.tiers) - 1:
                    raise ValueError(
                        f"{self.provider.value}: unbounded egress tier must be the last tier"
                    )
                continue
            if tier.up_to_gb <= 0:
                raise ValueError(f"{self.provider.value}: tier {index} up_to_gb must be > 0 or -1")
            if previous is not None and tier.up_to_gb <= previous:
                raise ValueError(
                    f"{self.provider.value}: egress tiers must be ordered by ascending up_to_gb"
                )
            previous = tier.up_to_gb

    @property
    def has_unbounded_tier(self) -> bool:
        return bool(self.tiers) and self.tiers[-1].unbounded


@dataclass(frozen=True)
class KubernetesPricing:
    """Managed Kubernetes control-plane pricing."""
    provider: Provider
    name: str
    control_plane_hourly: float
    control_plane_monthly: float
    worker_node_included: bool = False
    notes: Optional[str] = None

    @property
    def free_control_plane(self) -> bool:
        return self.control_plane_monthly == 0


@dataclass(frozen=True)
class DatabasePricing:
    """Managed database offering."""
    provider: Provider
    name: str
    database_type: DatabaseType
    hourly_price: float
    monthly_price: float
    engine: Optional[str] = None
    vcpus: Optional[int] = None
    memory_gb: Optional[float] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class ProviderPricingData:
    """Complete normalized bundle for one provider."""
    metadata: PricingMetadata
    compute: Tuple[ComputeInstance, ...]
    storage: Tuple[StoragePricing, ...]
    egress: EgressPricing
    kubernetes: Optional[KubernetesPricing] = None
    database: Tuple[DatabasePricing, ...] = ()

    @property
    def provider(self) -> Provider:
        return self.metadata.provider


@dataclass(frozen=True)
class DataFreshness:
    """Age of a provider bundle."""
    provider: Provider
    last_updated: datetime
    age_in_days: int
    is_stale: bool
    source: str


def validate_egress_pricing(pricing: EgressPricing) -> Tuple[str, ...]:
    """Report data-quality problems in an egress tier list.

    Ordering problems are rejected at construction; this reports the
    problems that leave part of the volume range without a price.

    Returns:
        Human-readable problems (empty when the tiers are complete)
    """
    problems = []
    if not pricing.tiers:
        problems.append(f"{pricing.provider.label}: egress pricing has no tiers")
    elif not pricing.has_unbounded_tier:
        last = pricing.tiers[-1].up_to_gb
        problems.append(
            f"{pricing.provider.label}: egress tiers end at {last:,.0f}GB with no unbounded "
            f"tier; volume beyond that is unpriced"
        )
    return tuple(problems)
