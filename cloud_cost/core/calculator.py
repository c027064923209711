"""
Workload cost estimation.

Prices a whole workload on each provider by composing the comparison
queries, then ranks providers and explains the savings against the
baseline provider. Migration estimates reuse the same per-provider matrix.

A resource that a provider cannot serve contributes nothing to that
provider's total and is explained in the estimate notes instead.
"""

import logging
from dataclasses import dataclass, replace
from typing import List, Optional, Tuple, Union

from .compare import (
    ComputeQuery,
    EgressQuery,
    KubernetesQuery,
    StorageQuery,
    compare_compute,
    compare_egress,
    compare_kubernetes,
    compare_storage,
)
from .presets import get_preset
from .pricing import format_currency, multiply, percent_savings, round_cents, to_decimal, total
from .workload import WorkloadSpec
from cloud_cost.storage.models import (
    ALL_PROVIDERS,
    BASELINE_PROVIDER,
    Provider,
    StorageTier,
    StorageType,
)
from cloud_cost.storage.repository import PricingRepository

logger = logging.getLogger(__name__)

MONTHS_PER_YEAR = 12


@dataclass(frozen=True)
class BreakdownLine:
    """One priced item of a workload estimate."""
    category: str
    item: str
    quantity: float
    unit_price: float
    monthly_total: float


@dataclass(frozen=True)
class WorkloadCostEstimate:
    """Monthly cost of a workload on one provider."""
    provider: Provider
    breakdown: Tuple[BreakdownLine, ...]
    total_monthly: float
    notes: Tuple[str, ...] = ()
    highlights: Tuple[str, ...] = ()


@dataclass(frozen=True)
class WorkloadComparison:
    """Workload estimates for every provider, cheapest first."""
    spec: WorkloadSpec
    estimates: Tuple[WorkloadCostEstimate, ...]
    cheapest: Provider
    savings_summary: str
    preset: Optional[str] = None
    preset_description: Optional[str] = None

    def estimate_for(self, provider: Provider) -> WorkloadCostEstimate:
        return next(e for e in self.estimates if e.provider == provider)


@dataclass(frozen=True)
class MigrationEstimate:
    """Projected savings of moving a workload between providers."""
    current_provider: Provider
    target_provider: Provider
    current_cost: float
    target_cost: float
    monthly_savings: float
    annual_savings: float
    percent_savings: int
    recommendation: str


def estimate_provider_cost(
    spec: WorkloadSpec,
    provider: Provider,
    repository: PricingRepository
) -> WorkloadCostEstimate:
    """Price a workload on a single provider.

    Args:
        spec: Workload to price
        provider: Provider to price it on
        repository: Pricing data source

    Returns:
        WorkloadCostEstimate whose total is the sum of its breakdown lines
    """
    only = (provider,)
    lines: List[BreakdownLine] = []
    notes: List[str] = []
    highlights: List[str] = []

    if spec.compute is not None:
        request = spec.compute
        result = compare_compute(
            ComputeQuery(vcpus=request.vcpus, memory_gb=request.memory_gb), repository, only
        )
        instance = result.cheapest
        if instance is not None:
            lines.append(BreakdownLine(
                category="Compute",
                item=instance.name,
                quantity=request.count,
                unit_price=instance.monthly_price,
                monthly_total=multiply(instance.monthly_price, request.count)
            ))
        else:
            notes.append(
                f"No matching compute instance found for {request.vcpus} vCPUs / {request.memory_gb}GB"
            )

    if spec.storage is not None:
        for label, size_gb, storage_type in (
            ("Object Storage", spec.storage.object_gb, StorageType.OBJECT),
            ("Block Storage", spec.storage.block_gb, StorageType.BLOCK),
        ):
            if size_gb is None:
                continue
            result = compare_storage(
                StorageQuery(size_gb=size_gb, tier=StorageTier.HOT, storage_type=storage_type),
                repository,
                only
            )
            option = result.cheapest
            if option is not None:
                lines.append(BreakdownLine(
                    category="Storage",
                    item=f"{label} ({option.name})",
                    quantity=size_gb,
                    unit_price=option.price_per_gb_month,
                    monthly_total=result.estimates[0].monthly_cost
                ))
            else:
                notes.append(f"{provider.label}: no hot-tier {storage_type.value} storage available")

    if spec.egress is not None:
        monthly_gb = spec.egress.monthly_gb
        result = compare_egress(EgressQuery(monthly_gb=monthly_gb), repository, only)
        if result.estimates:
            estimate = result.estimates[0]
            unit_price = 0.0
            if monthly_gb > 0:
                unit_price = float(to_decimal(estimate.monthly_cost) / to_decimal(monthly_gb))
            lines.append(BreakdownLine(
                category="Networking",
                item=f"Data Egress ({estimate.breakdown})",
                quantity=monthly_gb,
                unit_price=unit_price,
                monthly_total=estimate.monthly_cost
            ))
            if estimate.monthly_cost == 0 and estimate.free_gb > 0:
                notes.append(
                    f"{provider.label}: {estimate.free_gb:,.0f}GB/month free egress covers this volume"
                )
                highlights.append(f"{estimate.free_gb:,.0f}GB free egress")
            if not estimate.complete:
                notes.append(
                    f"{provider.label}: {estimate.unpriced_gb:,.0f}GB of egress beyond the last "
                    f"pricing tier is not priced"
                )

    if spec.kubernetes is not None:
        request = spec.kubernetes
        result = compare_kubernetes(
            KubernetesQuery(
                node_count=request.node_count,
                node_vcpus=request.node_vcpus,
                node_memory_gb=request.node_memory_gb
            ),
            repository,
            only
        )
        if not result.estimates:
            notes.append(f"{provider.label}: no managed Kubernetes pricing available")
        else:
            estimate = result.estimates[0]
            if estimate.control_plane_cost > 0:
                lines.append(BreakdownLine(
                    category="Kubernetes",
                    item=f"{estimate.product} Control Plane",
                    quantity=1,
                    unit_price=estimate.control_plane_cost,
                    monthly_total=estimate.control_plane_cost
                ))
            else:
                notes.append(f"{provider.label}: Free Kubernetes control plane ({estimate.product})")
                highlights.append("free Kubernetes control plane")

            worker = estimate.worker_instance
            if worker is not None:
                lines.append(BreakdownLine(
                    category="Kubernetes",
                    item=f"Worker Nodes ({request.node_count}x {worker.name})",
                    quantity=request.node_count,
                    unit_price=worker.monthly_price,
                    monthly_total=estimate.worker_node_cost
                ))
            elif estimate.worker_note is not None:
                notes.append(estimate.worker_note)

    return WorkloadCostEstimate(
        provider=provider,
        breakdown=tuple(lines),
        total_monthly=total(line.monthly_total for line in lines),
        notes=tuple(notes),
        highlights=tuple(highlights)
    )


def calculate_workload_cost(spec: WorkloadSpec, repository: PricingRepository) -> WorkloadComparison:
    """Price a workload on every provider and rank them.

    The savings summary compares the cheapest provider with the baseline
    provider; the percentage is left out when the baseline costs nothing.
    """
    estimates = sorted(
        (estimate_provider_cost(spec, provider, repository) for provider in ALL_PROVIDERS),
        key=lambda e: e.total_monthly
    )
    cheapest = estimates[0]
    baseline = next(e for e in estimates if e.provider == BASELINE_PROVIDER)

    summary = f"Cheapest option: {cheapest.provider.label} at {format_currency(cheapest.total_monthly)}/month."
    if cheapest.provider != BASELINE_PROVIDER:
        saved = round_cents(to_decimal(baseline.total_monthly) - to_decimal(cheapest.total_monthly))
        summary += f" Saves {format_currency(saved)}/month vs {BASELINE_PROVIDER.label}."
        percent = percent_savings(baseline.total_monthly, cheapest.total_monthly)
        if percent is not None:
            summary += f" That is {percent}% less than {BASELINE_PROVIDER.label}."
    if cheapest.highlights:
        summary += f" {cheapest.provider.label} advantages: {', '.join(cheapest.highlights)}."

    logger.debug("Workload priced: %s", summary)
    return WorkloadComparison(
        spec=spec,
        estimates=tuple(estimates),
        cheapest=cheapest.provider,
        savings_summary=summary
    )


def quick_estimate(preset_name: str, repository: PricingRepository) -> WorkloadComparison:
    """Price a named preset workload.

    Raises:
        UnknownPresetError: If the preset does not exist
    """
    preset = get_preset(preset_name)
    result = calculate_workload_cost(preset.spec, repository)
    return replace(result, preset=preset.name, preset_description=preset.description)


def estimate_migration_savings(
    spec: WorkloadSpec,
    current_provider: Union[Provider, str],
    repository: PricingRepository,
    target_provider: Optional[Union[Provider, str]] = None
) -> MigrationEstimate:
    """Estimate the savings of moving a workload to another provider.

    Args:
        spec: Workload to price
        current_provider: Where the workload runs today
        repository: Pricing data source
        target_provider: Destination (defaults to the cheapest provider)

    Raises:
        UnknownProviderError: If either provider is not supported
    """
    current = Provider.parse(current_provider)
    target = Provider.parse(target_provider) if target_provider is not None else None

    comparison = calculate_workload_cost(spec, repository)
    target = target or comparison.cheapest
    current_cost = comparison.estimate_for(current).total_monthly
    target_cost = comparison.estimate_for(target).total_monthly

    monthly = round_cents(to_decimal(current_cost) - to_decimal(target_cost))
    annual = round_cents(to_decimal(monthly) * MONTHS_PER_YEAR)
    measured = percent_savings(current_cost, target_cost)
    percent = measured or 0

    if monthly > 0:
        recommendation = (
            f"Migrating from {current.label} to {target.label} could save "
            f"{format_currency(annual)}/year ({percent}%)."
        )
    elif monthly < 0:
        recommendation = f"{current.label} is already cheaper than {target.label} for this workload"
        # No percentage when the workload costs nothing today
        if measured is not None:
            recommendation += f"; migrating would raise costs by {abs(measured)}%"
        recommendation += "."
    else:
        recommendation = f"Costs are similar between {current.label} and {target.label}."

    return MigrationEstimate(
        current_provider=current,
        target_provider=target,
        current_cost=current_cost,
        target_cost=target_cost,
        monthly_savings=monthly,
        annual_savings=annual,
        percent_savings=percent,
        recommendation=recommendation
    )
