"""
Tests for the programmatic client.

Tests JSON-ready payloads and the structured error boundary.
"""

import json

import pytest

from cloud_cost.sdk import CloudCostClient
from cloud_cost.sdk.client import error_payload, is_error, to_payload
from cloud_cost.core.errors import UnknownPresetError
from cloud_cost.storage.models import Provider


@pytest.fixture
def client(repository):
    return CloudCostClient(repository=repository)


class TestPayloads:
    """Test payload conversion."""

    def test_compute_payload_is_json_ready(self, client):
        payload = client.compare_compute(vcpus=4, memory_gb=16)

        assert not is_error(payload)
        assert payload["cheapest"]["provider"] == "oci"
        assert payload["cheapest"]["category"] == "general"
        assert payload["savings_vs_baseline"] == 64
        json.dumps(payload)

    def test_provider_restriction_by_name(self, client):
        payload = client.compare_compute(vcpus=4, memory_gb=16, providers=["GCP"])
        assert {m["provider"] for m in payload["matches"]} == {"gcp"}

    def test_storage_summary_keys_are_values(self, client):
        payload = client.storage_summary(100)
        assert set(payload["by_tier"]) == {"hot", "cool", "cold", "archive"}

    def test_egress_payload(self, client):
        payload = client.compare_egress(20000)
        aws = next(e for e in payload["estimates"] if e["provider"] == "aws")
        assert aws["monthly_cost"] == 1400.60
        assert payload["large_allowance_providers"] == ["oci"]

    def test_workload_from_mapping(self, client):
        payload = client.calculate_workload_cost({
            "compute": {"vcpus": 4, "memoryGB": 16, "count": 2},
            "storage": {"objectGB": 100, "blockGB": 100},
            "egress": {"monthlyGB": 500},
        })
        assert payload["cheapest"] == "oci"
        assert payload["estimates"][0]["total_monthly"] == 106.80
        json.dumps(payload)

    def test_migration(self, client):
        payload = client.estimate_migration_savings(
            {"compute": {"vcpus": 4, "memory_gb": 16}}, "aws", "oci"
        )
        assert payload["current_provider"] == "aws"
        assert payload["target_provider"] == "oci"
        assert payload["monthly_savings"] == 90.16

    def test_freshness_dates_are_iso(self, client):
        payload = client.data_freshness()
        assert payload["providers"][0]["last_updated"].startswith("2025-01-15T00:00:00")

    def test_provider_details(self, client):
        payload = client.provider_details("Azure")
        assert payload["provider"] == "azure"
        assert payload["kubernetes"]["name"] == "AKS"
        json.dumps(payload)

    def test_list_presets(self, client):
        payload = client.list_presets()
        assert len(payload["presets"]) == 11

    def test_cache_stats_and_refresh(self, client):
        client.provider_details("aws")
        assert "AWS_PRICING" in client.cache_stats()["keys"]
        assert client.refresh() == {"refreshed": True}
        assert client.cache_stats()["size"] == 0

    def test_to_payload_handles_nested_records(self):
        assert to_payload({Provider.AWS: (Provider.GCP,)}) == {"aws": ["gcp"]}


class TestErrorBoundary:
    """Test that failures come back as error payloads."""

    def test_unknown_provider(self, client):
        payload = client.provider_details("ibm")
        assert is_error(payload)
        assert payload["error"]["type"] == "UnknownProviderError"
        assert payload["error"]["valid_options"] == ["aws", "azure", "gcp", "oci"]

    def test_unknown_preset(self, client):
        payload = client.quick_estimate("nope")
        assert payload["error"]["type"] == "UnknownPresetError"
        assert "small-web-app" in payload["error"]["valid_options"]

    def test_invalid_request(self, client):
        payload = client.compare_storage(-1)
        assert payload["error"]["type"] == "ValueError"
        assert payload["error"]["valid_options"] == []

    def test_invalid_workload(self, client):
        payload = client.calculate_workload_cost({"compute": {"cpus": 2}})
        assert "Unknown keys in compute" in payload["error"]["message"]

    def test_error_payload_shape(self):
        payload = error_payload(UnknownPresetError("x", ["a", "b"]))
        assert payload == {
            "error": {
                "type": "UnknownPresetError",
                "message": "Unknown preset: x. Available presets: a, b",
                "valid_options": ["a", "b"],
            }
        }
