"""
Unit tests for the comparison engine.

Tests compute matching, storage ranking, tiered egress and Kubernetes cost.
"""

import logging

import pytest

from cloud_cost.core.compare import (
    MAX_RESULTS,
    ArchitectureFilter,
    CategoryFilter,
    ComputeQuery,
    EgressQuery,
    KubernetesQuery,
    StorageQuery,
    calculate_egress_cost,
    compare_compute,
    compare_egress,
    compare_kubernetes,
    compare_storage,
    find_cheapest_compute,
    match_compute,
    resolve_compute_filter,
    storage_summary,
)
from cloud_cost.storage.models import (
    Architecture,
    ComputeCategory,
    Provider,
    StorageTier,
    StorageType,
)
from conftest import egress, instance


class TestComputeMatching:
    """Test the matching band and filters."""

    def test_exact_shape_matches(self):
        """Verify a 4 vCPU / 16GB instance at 0.14/hr matches a 4/16 request."""
        candidate = instance(Provider.AWS, "m5.xlarge", 4, 16, 0.14)
        matches = match_compute([candidate], ComputeQuery(vcpus=4, memory_gb=16))
        assert matches == [candidate]
        assert matches[0].monthly_price == 102.20

    def test_band_bounds_inclusive(self):
        """Verify 0.5x and 1.5x are inside the band."""
        low = instance(Provider.AWS, "low", 2, 8, 0.1)
        high = instance(Provider.AWS, "high", 6, 24, 0.1)
        outside = instance(Provider.AWS, "outside", 7, 16, 0.1)
        matches = match_compute([low, high, outside], ComputeQuery(vcpus=4, memory_gb=16))
        assert [m.name for m in matches] == ["low", "high"]

    def test_missing_values_count_as_zero(self):
        """Verify None vCPU/memory is treated as 0."""
        query = ComputeQuery(vcpus=None, memory_gb=None)
        assert query.vcpus == 0
        assert query.memory_gb == 0

    def test_negative_request_rejected(self):
        with pytest.raises(ValueError, match="vcpus cannot be negative"):
            ComputeQuery(vcpus=-1, memory_gb=4)

    def test_unknown_category_rejected(self):
        with pytest.raises(ValueError, match="category must be one of"):
            ComputeQuery(vcpus=4, memory_gb=16, category="quantum")

    def test_arm_resolves_to_architecture_filter(self):
        """Verify arm filters on architecture, other values on category."""
        assert resolve_compute_filter(ComputeCategory.ARM) == ArchitectureFilter(Architecture.ARM)
        assert resolve_compute_filter(ComputeCategory.MEMORY) == CategoryFilter(ComputeCategory.MEMORY)
        assert resolve_compute_filter(None) is None

    def test_ties_keep_catalog_order(self):
        first = instance(Provider.AWS, "first", 4, 16, 0.1)
        second = instance(Provider.AZURE, "second", 4, 16, 0.1)
        matches = match_compute([first, second], ComputeQuery(vcpus=4, memory_gb=16))
        assert [m.name for m in matches] == ["first", "second"]


class TestCompareCompute:
    """Test cross-provider compute comparison."""

    def test_sorted_cheapest_first(self, repository):
        """Verify results ascend by monthly price."""
        result = compare_compute(ComputeQuery(vcpus=4, memory_gb=16), repository)

        prices = [m.monthly_price for m in result.matches]
        assert prices == sorted(prices)
        assert result.total_matches == 6
        assert result.cheapest.name == "VM.Standard.E4.Flex.2"
        assert result.cheapest.monthly_price == 50.00

    def test_savings_against_baseline(self, repository):
        """Verify savings compare the cheapest with the cheapest AWS match."""
        result = compare_compute(ComputeQuery(vcpus=4, memory_gb=16), repository)
        assert result.savings_vs_baseline == 64
        assert "64% cheaper than AWS equivalent" in result.summary
        assert result.summary.startswith("Found 6 matching instances for ~4 vCPUs and ~16GB RAM.")

    def test_no_baseline_match_means_no_savings(self, repository):
        """Verify savings are absent, not 0, without an AWS match."""
        result = compare_compute(ComputeQuery(vcpus=4, memory_gb=16, category="arm"), repository)
        assert [m.name for m in result.matches] == ["Standard_D4ps_v5"]
        assert result.savings_vs_baseline is None

    def test_baseline_cheapest_means_no_savings(self, repository):
        result = compare_compute(ComputeQuery(vcpus=2, memory_gb=4), repository)
        assert result.cheapest.provider == Provider.AWS
        assert result.savings_vs_baseline is None

    def test_category_filter(self, repository):
        result = compare_compute(ComputeQuery(vcpus=4, memory_gb=32, category="memory"), repository)
        assert [m.name for m in result.matches] == ["r6i.xlarge"]

    def test_exclude_deprecated(self, repository):
        result = compare_compute(
            ComputeQuery(vcpus=4, memory_gb=16, exclude_deprecated=True), repository
        )
        assert "n1-standard-4" not in [m.name for m in result.matches]
        assert result.total_matches == 5

    def test_provider_restriction(self, repository):
        result = compare_compute(ComputeQuery(vcpus=4, memory_gb=16), repository, (Provider.AZURE,))
        assert {m.provider for m in result.matches} == {Provider.AZURE}

    def test_no_match_is_not_an_error(self, repository):
        """Verify an impossible shape yields empty results."""
        result = compare_compute(ComputeQuery(vcpus=512, memory_gb=8192), repository)
        assert result.matches == ()
        assert result.cheapest is None
        assert result.summary.startswith("Found 0 matching instances")

    def test_results_capped(self, repository, loader):
        """Verify at most MAX_RESULTS matches are returned."""
        many = tuple(
            instance(Provider.AWS, f"shape-{i}", 4, 16, 0.1 + i / 1000)
            for i in range(MAX_RESULTS + 5)
        )
        aws = loader.bundles[Provider.AWS]
        loader.bundles[Provider.AWS] = type(aws)(
            metadata=aws.metadata, compute=many, storage=aws.storage, egress=aws.egress
        )
        result = compare_compute(ComputeQuery(vcpus=4, memory_gb=16), repository)
        assert len(result.matches) == MAX_RESULTS
        assert result.total_matches > MAX_RESULTS

    def test_find_cheapest_per_provider(self, repository):
        result = find_cheapest_compute(ComputeQuery(vcpus=4, memory_gb=16), repository)
        options = {o.provider: o.instance for o in result.options}
        assert options[Provider.AWS].name == "m6i.xlarge"
        assert options[Provider.AZURE].name == "Standard_D4ps_v5"
        assert options[Provider.GCP].name == "e2-standard-4"
        assert result.cheapest.provider == Provider.OCI


class TestStorage:
    """Test storage ranking."""

    def test_rank_hot_object_storage(self, repository):
        result = compare_storage(
            StorageQuery(size_gb=1000, tier="hot", storage_type="object"), repository
        )
        assert [e.provider for e in result.estimates] == [
            Provider.AZURE, Provider.GCP, Provider.AWS, Provider.OCI
        ]
        assert result.estimates[0].monthly_cost == 18.40
        assert result.cheapest.name == "Blob Hot"

    def test_zero_size_costs_nothing(self, repository):
        result = compare_storage(StorageQuery(size_gb=0), repository)
        assert all(e.monthly_cost == 0 for e in result.estimates)

    def test_negative_size_rejected(self):
        with pytest.raises(ValueError, match="size_gb must be >= 0"):
            StorageQuery(size_gb=-1)

    def test_no_options(self, repository):
        result = compare_storage(StorageQuery(size_gb=10, tier=StorageTier.COOL), repository)
        assert result.cheapest is None
        assert "No storage options match" in result.summary

    def test_storage_summary(self, repository):
        summary = storage_summary(1000, repository)
        assert summary.by_tier[StorageTier.ARCHIVE][0].name == "Glacier Deep Archive"
        assert "For archival, use AWS Glacier Deep Archive" in summary.recommendation
        assert summary.recommendation.startswith("For 1,000GB frequently accessed data, use AZURE Blob Hot")
        assert summary.by_tier[StorageTier.HOT][0].storage.storage_type == StorageType.OBJECT


class TestEgress:
    """Test tiered egress pricing."""

    def setup_method(self):
        self.pricing = egress(Provider.AWS, 100, [(10240, 0.09), (-1, 0.05)])

    def test_within_first_tier(self):
        """Verify 10000GB bills 9900GB at 0.09."""
        estimate = calculate_egress_cost(self.pricing, 10000)
        assert estimate.billable_gb == 9900
        assert estimate.monthly_cost == 891.00
        assert estimate.complete

    def test_spills_into_unbounded_tier(self):
        """Verify tier 1 capacity excludes the free allowance."""
        estimate = calculate_egress_cost(self.pricing, 20000)
        assert estimate.billable_gb == 19900
        assert [c.gb for c in estimate.charges] == [10140, 9760]
        assert [c.cost for c in estimate.charges] == [912.60, 488.00]
        assert estimate.monthly_cost == 1400.60

    @pytest.mark.parametrize("volume", [0, 50, 100])
    def test_free_allowance(self, volume):
        assert calculate_egress_cost(self.pricing, volume).monthly_cost == 0

    def test_cost_non_decreasing(self):
        costs = [calculate_egress_cost(self.pricing, q).monthly_cost for q in range(0, 200001, 5000)]
        assert costs == sorted(costs)

    def test_missing_unbounded_tier_leaves_excess_unpriced(self, caplog):
        """Verify excess beyond finite tiers is flagged, never silently dropped."""
        pricing = egress(Provider.GCP, 200, [(1024, 0.12)])
        with caplog.at_level(logging.WARNING, logger="cloud_cost"):
            estimate = calculate_egress_cost(pricing, 2000)

        assert estimate.monthly_cost == 98.88
        assert estimate.unpriced_gb == 976
        assert not estimate.complete
        assert "unpriced" in estimate.breakdown
        assert "do not cover" in caplog.text

    def test_compare_egress(self, repository):
        """Verify ranking and the large-allowance callout."""
        result = compare_egress(EgressQuery(monthly_gb=10000), repository)
        assert result.cheapest == Provider.OCI
        assert [e.provider for e in result.estimates] == [
            Provider.OCI, Provider.AZURE, Provider.AWS, Provider.GCP
        ]
        assert result.large_allowance_providers == (Provider.OCI,)
        assert "OCI includes 10,240GB/month free egress, saving $891.00/month vs AWS." in result.summary

    def test_negative_volume_rejected(self):
        with pytest.raises(ValueError, match="monthly_gb must be >= 0"):
            EgressQuery(monthly_gb=-5)


class TestKubernetes:
    """Test managed cluster comparison."""

    def test_free_control_plane_cluster(self, repository):
        """Verify 3 nodes at 50.00 with a free control plane total 150.00."""
        result = compare_kubernetes(
            KubernetesQuery(node_count=3, node_vcpus=4, node_memory_gb=16), repository
        )
        cheapest = result.estimates[0]
        assert cheapest.provider == Provider.OCI
        assert cheapest.total_monthly_cost == 150.00
        assert cheapest.free_control_plane
        assert result.free_control_plane == (Provider.OCI, Provider.AZURE)
        assert "Free control plane: OCI, AZURE." in result.summary

    def test_paid_control_plane_included(self, repository):
        result = compare_kubernetes(
            KubernetesQuery(node_count=3, node_vcpus=4, node_memory_gb=16), repository
        )
        aws = next(e for e in result.estimates if e.provider == Provider.AWS)
        assert aws.control_plane_cost == 73.00
        assert aws.total_monthly_cost == 493.48

    def test_unmatched_worker_costs_nothing_with_note(self, repository):
        result = compare_kubernetes(
            KubernetesQuery(node_count=2, node_vcpus=64, node_memory_gb=512), repository
        )
        for estimate in result.estimates:
            assert estimate.worker_instance is None
            assert estimate.worker_node_cost == 0
            assert estimate.worker_note.startswith("No ")
            assert estimate.worker_note in estimate.notes
        assert result.cheapest in (Provider.AZURE, Provider.OCI)
