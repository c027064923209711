"""
Cross-cloud comparison queries.

Stateless queries over the merged multi-provider record sets: compute
matching, storage ranking, tiered egress cost and Kubernetes cluster cost.
Queries only filter, sort and project; the records read from the repository
are never modified.

A query that matches nothing is not an error. It returns empty results,
cheapest=None and a summary saying so.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, TypeVar, Union

from .pricing import format_currency, multiply, percent_savings, to_decimal, total
from cloud_cost.storage.models import (
    ALL_PROVIDERS,
    BASELINE_PROVIDER,
    Architecture,
    ComputeCategory,
    ComputeInstance,
    EgressPricing,
    Provider,
    SkuStatus,
    StoragePricing,
    StorageTier,
    StorageType,
)
from cloud_cost.storage.repository import PricingRepository

logger = logging.getLogger(__name__)

R = TypeVar("R")

# Matching band around the requested shape. Product decision, keep exact.
MATCH_LOWER_FACTOR = 0.5
MATCH_UPPER_FACTOR = 1.5

MAX_RESULTS = 20

# A free egress allowance this many times larger than every other
# provider's is called out in the egress summary
MATERIAL_ALLOWANCE_FACTOR = 10


@dataclass(frozen=True)
class CategoryFilter:
    """Keep instances of one instance-family category."""
    category: ComputeCategory

    def accepts(self, instance: ComputeInstance) -> bool:
        return instance.category == self.category


@dataclass(frozen=True)
class ArchitectureFilter:
    """Keep instances of one CPU architecture."""
    architecture: Architecture

    def accepts(self, instance: ComputeInstance) -> bool:
        return instance.architecture == self.architecture


ComputeFilter = Union[CategoryFilter, ArchitectureFilter]


def resolve_compute_filter(category: Optional[ComputeCategory]) -> Optional[ComputeFilter]:
    """Turn a requested category into the filter it actually means.

    "arm" names an architecture rather than an instance family, so it filters
    on the architecture field. Every other category filters on category.
    """
    if category is None:
        return None
    if category == ComputeCategory.ARM:
        return ArchitectureFilter(Architecture.ARM)
    return CategoryFilter(category)


def _coerce_enum(enum_cls, value, name: str):
    if value is None or isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).lower())
    except ValueError:
        valid = [member.value for member in enum_cls]
        raise ValueError(f"{name} must be one of: {valid}")


@dataclass(frozen=True)
class ComputeQuery:
    """Requested compute shape. Missing vCPU or memory counts as 0."""
    vcpus: Optional[float] = 0
    memory_gb: Optional[float] = 0
    category: Optional[ComputeCategory] = None
    exclude_deprecated: bool = False

    def __post_init__(self):
        """Normalize missing values and validate."""
        object.__setattr__(self, "vcpus", self.vcpus or 0)
        object.__setattr__(self, "memory_gb", self.memory_gb or 0)
        object.__setattr__(self, "category", _coerce_enum(ComputeCategory, self.category, "category"))
        if self.vcpus < 0:
            raise ValueError("vcpus cannot be negative")
        if self.memory_gb < 0:
            raise ValueError("memory_gb cannot be negative")


@dataclass(frozen=True)
class ComputeComparison:
    """Result of a compute comparison."""
    query: ComputeQuery
    matches: Tuple[ComputeInstance, ...]
    cheapest: Optional[ComputeInstance]
    summary: str
    total_matches: int
    savings_vs_baseline: Optional[int] = None  # percent, None without a baseline match


@dataclass(frozen=True)
class ProviderOption:
    """Cheapest matching instance for one provider, if any."""
    provider: Provider
    instance: Optional[ComputeInstance]


@dataclass(frozen=True)
class CheapestCompute:
    """Cheapest instance overall and per provider."""
    cheapest: Optional[ComputeInstance]
    options: Tuple[ProviderOption, ...]
    summary: str


def _restrict(records: Iterable[R], providers: Optional[Sequence[Provider]]) -> List[R]:
    if providers is None:
        return list(records)
    allowed = set(providers)
    return [record for record in records if record.provider in allowed]


def _format_quantity(value: Union[int, float, Decimal]) -> str:
    number = float(value)
    if number.is_integer():
        return f"{int(number):,}"
    return f"{number:,.2f}"


def match_compute(instances: Iterable[ComputeInstance], query: ComputeQuery) -> List[ComputeInstance]:
    """Find every instance within the matching band, cheapest first.

    An instance matches when both its vCPUs and memory lie within
    [0.5x, 1.5x] of the request, bounds inclusive. Ties keep catalog order.

    Args:
        instances: Candidate instances
        query: Requested shape and filters

    Returns:
        All matches sorted ascending by monthly price (uncapped)
    """
    vcpu_min = query.vcpus * MATCH_LOWER_FACTOR
    vcpu_max = query.vcpus * MATCH_UPPER_FACTOR
    mem_min = query.memory_gb * MATCH_LOWER_FACTOR
    mem_max = query.memory_gb * MATCH_UPPER_FACTOR
    shape_filter = resolve_compute_filter(query.category)

    matches = []
    for instance in instances:
        if not (vcpu_min <= instance.vcpus <= vcpu_max):
            continue
        if not (mem_min <= instance.memory_gb <= mem_max):
            continue
        if shape_filter is not None and not shape_filter.accepts(instance):
            continue
        if query.exclude_deprecated and instance.status == SkuStatus.DEPRECATED:
            continue
        matches.append(instance)

    return sorted(matches, key=lambda i: i.monthly_price)


def compare_compute(
    query: ComputeQuery,
    repository: PricingRepository,
    providers: Optional[Sequence[Provider]] = None
) -> ComputeComparison:
    """Compare compute instances across providers for a requested shape.

    Args:
        query: Requested vCPUs, memory and optional category
        repository: Pricing data source
        providers: Optional restriction to a subset of providers

    Returns:
        ComputeComparison with the 20 cheapest matches, the cheapest instance
        and, when the cheapest is not the baseline provider and the baseline
        has a match, the percentage saved against the baseline's cheapest
    """
    instances = _restrict(repository.get_all_compute_instances(), providers)
    matches = match_compute(instances, query)
    cheapest = matches[0] if matches else None

    baseline_match = next((m for m in matches if m.provider == BASELINE_PROVIDER), None)
    savings = None
    if cheapest is not None and baseline_match is not None and cheapest.provider != BASELINE_PROVIDER:
        savings = percent_savings(baseline_match.monthly_price, cheapest.monthly_price)

    summary = (
        f"Found {len(matches)} matching instances for ~{_format_quantity(query.vcpus)} vCPUs "
        f"and ~{_format_quantity(query.memory_gb)}GB RAM."
    )
    if cheapest is not None:
        summary += (
            f" Cheapest: {cheapest.provider.label} {cheapest.name} at "
            f"{format_currency(cheapest.monthly_price)}/month."
        )
        if savings is not None and savings > 0:
            summary += f" {savings}% cheaper than {BASELINE_PROVIDER.label} equivalent."

    logger.debug("Compute query %s matched %d instances", query, len(matches))
    return ComputeComparison(
        query=query,
        matches=tuple(matches[:MAX_RESULTS]),
        cheapest=cheapest,
        summary=summary,
        total_matches=len(matches),
        savings_vs_baseline=savings
    )


def find_cheapest_compute(query: ComputeQuery, repository: PricingRepository) -> CheapestCompute:
    """Find the cheapest matching instance overall and for each provider."""
    result = compare_compute(query, repository)
    matches = match_compute(repository.get_all_compute_instances(), query)
    options = tuple(
        ProviderOption(
            provider=provider,
            instance=next((m for m in matches if m.provider == provider), None)
        )
        for provider in ALL_PROVIDERS
    )
    return CheapestCompute(cheapest=result.cheapest, options=options, summary=result.summary)


@dataclass(frozen=True)
class StorageQuery:
    """Requested storage size with optional tier and type filters."""
    size_gb: float
    tier: Optional[StorageTier] = None
    storage_type: Optional[StorageType] = None

    def __post_init__(self):
        object.__setattr__(self, "tier", _coerce_enum(StorageTier, self.tier, "tier"))
        object.__setattr__(self, "storage_type", _coerce_enum(StorageType, self.storage_type, "storage_type"))
        if self.size_gb is None or self.size_gb < 0:
            raise ValueError("size_gb must be >= 0")


@dataclass(frozen=True)
class StorageEstimate:
    """Monthly cost of storing the requested size in one storage class."""
    provider: Provider
    name: str
    monthly_cost: float
    storage: StoragePricing


@dataclass(frozen=True)
class StorageComparison:
    """Result of a storage comparison."""
    query: StorageQuery
    estimates: Tuple[StorageEstimate, ...]
    cheapest: Optional[StoragePricing]
    summary: str


@dataclass(frozen=True)
class StorageSummary:
    """Cheapest options per storage tier with a recommendation."""
    size_gb: float
    by_tier: Dict[StorageTier, Tuple[StorageEstimate, ...]]
    recommendation: str


def rank_storage(options: Iterable[StoragePricing], query: StorageQuery) -> List[StorageEstimate]:
    """Filter storage classes by tier/type and rank them by monthly cost."""
    estimates = [
        StorageEstimate(
            provider=option.provider,
            name=option.name,
            monthly_cost=multiply(option.price_per_gb_month, query.size_gb),
            storage=option
        )
        for option in options
        if (query.tier is None or option.tier == query.tier)
        and (query.storage_type is None or option.storage_type == query.storage_type)
    ]
    return sorted(estimates, key=lambda e: e.monthly_cost)


def compare_storage(
    query: StorageQuery,
    repository: PricingRepository,
    providers: Optional[Sequence[Provider]] = None
) -> StorageComparison:
    """Rank storage classes by the monthly cost of the requested size."""
    estimates = rank_storage(_restrict(repository.get_all_storage_options(), providers), query)
    cheapest = estimates[0] if estimates else None

    tier_str = f" ({query.tier.value} tier)" if query.tier else ""
    type_str = f" {query.storage_type.value}" if query.storage_type else ""
    summary = f"Storage comparison for {_format_quantity(query.size_gb)}GB{type_str}{tier_str}."
    if cheapest is not None:
        summary += (
            f" Cheapest: {cheapest.provider.label} {cheapest.name} at "
            f"{format_currency(cheapest.monthly_cost)}/month."
        )
    else:
        summary += " No storage options match."

    return StorageComparison(
        query=query,
        estimates=tuple(estimates[:MAX_RESULTS]),
        cheapest=cheapest.storage if cheapest else None,
        summary=summary
    )


def storage_summary(size_gb: float, repository: PricingRepository) -> StorageSummary:
    """Rank storage for every tier and recommend hot and archival options."""
    by_tier = {
        tier: compare_storage(StorageQuery(size_gb=size_gb, tier=tier), repository).estimates
        for tier in StorageTier
    }

    size = _format_quantity(size_gb)
    hot = by_tier[StorageTier.HOT]
    archive = by_tier[StorageTier.ARCHIVE]
    if hot:
        recommendation = (
            f"For {size}GB frequently accessed data, use {hot[0].provider.label} {hot[0].name} "
            f"({format_currency(hot[0].monthly_cost)}/mo)."
        )
    else:
        recommendation = f"No hot-tier storage available for {size}GB."
    if archive:
        recommendation += (
            f" For archival, use {archive[0].provider.label} {archive[0].name} "
            f"({format_currency(archive[0].monthly_cost)}/mo)."
        )

    return StorageSummary(size_gb=size_gb, by_tier=by_tier, recommendation=recommendation)


@dataclass(frozen=True)
class EgressQuery:
    """Requested monthly egress volume."""
    monthly_gb: float

    def __post_init__(self):
        if self.monthly_gb is None or self.monthly_gb < 0:
            raise ValueError("monthly_gb must be >= 0")


@dataclass(frozen=True)
class TierCharge:
    """Volume billed within one egress tier."""
    up_to_gb: float
    price_per_gb: float
    gb: float
    cost: float


@dataclass(frozen=True)
class EgressEstimate:
    """Monthly egress cost for one provider.

    unpriced_gb is billable volume that fell beyond the last finite tier of
    a tier list with no unbounded tier. It is never included in
    monthly_cost.
    """
    provider: Provider
    monthly_cost: float
    free_gb: float
    billable_gb: float
    charges: Tuple[TierCharge, ...]
    unpriced_gb: float
    breakdown: str

    @property
    def complete(self) -> bool:
        return self.unpriced_gb == 0


@dataclass(frozen=True)
class EgressComparison:
    """Result of an egress comparison."""
    query: EgressQuery
    estimates: Tuple[EgressEstimate, ...]
    cheapest: Optional[Provider]
    large_allowance_providers: Tuple[Provider, ...]
    summary: str


def calculate_egress_cost(pricing: EgressPricing, monthly_gb: float) -> EgressEstimate:
    """Price a monthly egress volume against tiered pricing.

    Tier ceilings count cumulative GB including the free allowance, so a
    finite tier can bill at most (up_to_gb - free allowance) GB. The
    unbounded tier takes whatever billable volume remains.

    Args:
        pricing: Provider egress pricing
        monthly_gb: Requested monthly volume in GB

    Returns:
        EgressEstimate; cost is 0 whenever monthly_gb <= free allowance
    """
    free = to_decimal(pricing.free_gb_per_month)
    billable = max(Decimal("0"), to_decimal(monthly_gb) - free)

    remaining = billable
    cost = Decimal("0")
    charges = []
    for tier in pricing.tiers:
        if remaining <= 0:
            break
        if tier.unbounded:
            gb = remaining
        else:
            gb = min(remaining, max(to_decimal(tier.up_to_gb) - free, Decimal("0")))
        if gb <= 0:
            continue
        charge = gb * to_decimal(tier.price_per_gb)
        cost += charge
        remaining -= gb
        charges.append(TierCharge(
            up_to_gb=tier.up_to_gb,
            price_per_gb=tier.price_per_gb,
            gb=float(gb),
            cost=float(charge)
        ))

    breakdown = f"{_format_quantity(free)}GB free"
    if billable > 0:
        breakdown += f", {_format_quantity(billable)}GB billed at tiered rates"
    if remaining > 0:
        breakdown += f", {_format_quantity(remaining)}GB beyond the last tier unpriced"
        logger.warning(
            "%s egress tiers do not cover %s GB; excess left unpriced",
            pricing.provider.label, monthly_gb
        )

    return EgressEstimate(
        provider=pricing.provider,
        monthly_cost=float(cost),
        free_gb=float(free),
        billable_gb=float(billable),
        charges=tuple(charges),
        unpriced_gb=float(remaining),
        breakdown=breakdown
    )


def _large_allowance_providers(pricings: Sequence[EgressPricing]) -> List[Provider]:
    generous = []
    for pricing in pricings:
        others = [p.free_gb_per_month for p in pricings if p.provider != pricing.provider]
        if not others or pricing.free_gb_per_month <= 0:
            continue
        if pricing.free_gb_per_month >= MATERIAL_ALLOWANCE_FACTOR * max(others):
            generous.append(pricing.provider)
    return generous


def compare_egress(
    query: EgressQuery,
    repository: PricingRepository,
    providers: Optional[Sequence[Provider]] = None
) -> EgressComparison:
    """Compare the monthly cost of an egress volume across providers."""
    pricings = _restrict(repository.get_all_egress_pricing(), providers)
    estimates = sorted(
        (calculate_egress_cost(pricing, query.monthly_gb) for pricing in pricings),
        key=lambda e: e.monthly_cost
    )
    by_provider = {e.provider: e for e in estimates}
    cheapest = estimates[0] if estimates else None
    generous = _large_allowance_providers(pricings)

    summary = f"Egress comparison for {_format_quantity(query.monthly_gb)}GB/month."
    if cheapest is None:
        summary += " No egress pricing available."
    else:
        summary += f" Cheapest: {cheapest.provider.label} at {format_currency(cheapest.monthly_cost)}/month."

    baseline = by_provider.get(BASELINE_PROVIDER)
    for provider in generous:
        estimate = by_provider[provider]
        summary += f" {provider.label} includes {_format_quantity(estimate.free_gb)}GB/month free egress"
        if baseline is not None and estimate.monthly_cost < baseline.monthly_cost:
            saved = baseline.monthly_cost - estimate.monthly_cost
            summary += f", saving {format_currency(saved)}/month vs {BASELINE_PROVIDER.label}"
        summary += "."

    for estimate in estimates:
        if not estimate.complete:
            summary += (
                f" {estimate.provider.label} tier list has no unbounded tier; "
                f"{_format_quantity(estimate.unpriced_gb)}GB left unpriced."
            )

    return EgressComparison(
        query=query,
        estimates=tuple(estimates),
        cheapest=cheapest.provider if cheapest else None,
        large_allowance_providers=tuple(generous),
        summary=summary
    )


@dataclass(frozen=True)
class KubernetesQuery:
    """Requested cluster shape."""
    node_count: int
    node_vcpus: float
    node_memory_gb: float

    def __post_init__(self):
        if self.node_count is None or self.node_count < 0:
            raise ValueError("node_count must be >= 0")
        if self.node_vcpus is None or self.node_vcpus < 0:
            raise ValueError("node_vcpus must be >= 0")
        if self.node_memory_gb is None or self.node_memory_gb < 0:
            raise ValueError("node_memory_gb must be >= 0")


@dataclass(frozen=True)
class KubernetesEstimate:
    """Monthly cost of a managed cluster on one provider."""
    provider: Provider
    product: str
    control_plane_cost: float
    worker_instance: Optional[ComputeInstance]
    worker_node_cost: float
    total_monthly_cost: float
    notes: Tuple[str, ...] = ()
    worker_note: Optional[str] = None

    @property
    def free_control_plane(self) -> bool:
        return self.control_plane_cost == 0


@dataclass(frozen=True)
class KubernetesComparison:
    """Result of a Kubernetes comparison."""
    query: KubernetesQuery
    estimates: Tuple[KubernetesEstimate, ...]
    cheapest: Optional[Provider]
    free_control_plane: Tuple[Provider, ...]
    summary: str


def compare_kubernetes(
    query: KubernetesQuery,
    repository: PricingRepository,
    providers: Optional[Sequence[Provider]] = None
) -> KubernetesComparison:
    """Compare managed Kubernetes cluster cost across providers.

    Total = control plane + cheapest matching worker shape x node count. A
    provider with no matching worker shape still ranks, with a worker cost of
    0 and a note saying so.
    """
    k8s_pricing = repository.get_all_kubernetes_pricing()
    workers = match_compute(
        _restrict(repository.get_all_compute_instances(), providers),
        ComputeQuery(vcpus=query.node_vcpus, memory_gb=query.node_memory_gb)
    )
    allowed = ALL_PROVIDERS if providers is None else [p for p in ALL_PROVIDERS if p in set(providers)]

    estimates = []
    for provider in allowed:
        k8s = k8s_pricing.get(provider)
        if k8s is None:
            continue

        notes = [k8s.notes] if k8s.notes else []
        worker_note = None
        worker = next((w for w in workers if w.provider == provider), None)
        if worker is not None:
            worker_cost = multiply(worker.monthly_price, query.node_count)
        else:
            worker_cost = 0.0
            worker_note = (
                f"No {provider.label} worker shape matches {_format_quantity(query.node_vcpus)} vCPUs / "
                f"{_format_quantity(query.node_memory_gb)}GB; worker nodes counted as $0.00"
            )
            notes.append(worker_note)

        estimates.append(KubernetesEstimate(
            provider=provider,
            product=k8s.name,
            control_plane_cost=k8s.control_plane_monthly,
            worker_instance=worker,
            worker_node_cost=worker_cost,
            total_monthly_cost=total([k8s.control_plane_monthly, worker_cost]),
            notes=tuple(notes),
            worker_note=worker_note
        ))

    estimates.sort(key=lambda e: e.total_monthly_cost)
    free = tuple(e.provider for e in estimates if e.free_control_plane)
    cheapest = estimates[0] if estimates else None

    summary = (
        f"Kubernetes cluster comparison: {query.node_count} nodes × "
        f"{_format_quantity(query.node_vcpus)} vCPUs × {_format_quantity(query.node_memory_gb)}GB."
    )
    if cheapest is None:
        summary += " No managed Kubernetes pricing available."
    else:
        summary += f" Cheapest: {cheapest.provider.label} at {format_currency(cheapest.total_monthly_cost)}/month."
    if free:
        summary += f" Free control plane: {', '.join(p.label for p in free)}."

    return KubernetesComparison(
        query=query,
        estimates=tuple(estimates),
        cheapest=cheapest.provider if cheapest else None,
        free_control_plane=free,
        summary=summary
    )
