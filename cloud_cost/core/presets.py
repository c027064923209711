"""
Named workload presets for quick estimates.
"""

from dataclasses import dataclass
from typing import Dict, List

from .errors import UnknownPresetError
from .workload import (
    ComputeRequest,
    EgressRequest,
    KubernetesRequest,
    StorageRequest,
    WorkloadSpec,
)


@dataclass(frozen=True)
class Preset:
    """A common deployment shape."""
    name: str
    description: str
    summary: str
    category: str
    spec: WorkloadSpec


_PRESETS = [
    Preset(
        name="small-web-app",
        description="Basic web application with single instance",
        summary="2 vCPU, 4GB RAM, 50GB storage, 100GB egress",
        category="web",
        spec=WorkloadSpec(
            compute=ComputeRequest(vcpus=2, memory_gb=4, count=1),
            storage=StorageRequest(block_gb=50),
            egress=EgressRequest(monthly_gb=100)
        )
    ),
    Preset(
        name="medium-api-server",
        description="API server with load balancing and moderate storage",
        summary="2x 4 vCPU, 16GB RAM, 200GB block + 100GB object, 500GB egress",
        category="web",
        spec=WorkloadSpec(
            compute=ComputeRequest(vcpus=4, memory_gb=16, count=2),
            storage=StorageRequest(object_gb=100, block_gb=200),
            egress=EgressRequest(monthly_gb=500)
        )
    ),
    Preset(
        name="high-traffic-web",
        description="Load-balanced web tier with 4 instances and CDN",
        summary="4x 8 vCPU, 64GB RAM, 500GB block + 2TB object, 10TB egress",
        category="web",
        spec=WorkloadSpec(
            compute=ComputeRequest(vcpus=8, memory_gb=64, count=4),
            storage=StorageRequest(object_gb=2000, block_gb=500),
            egress=EgressRequest(monthly_gb=10000)
        )
    ),
    Preset(
        name="large-database",
        description="High-memory database server with 1TB storage",
        summary="8 vCPU, 64GB RAM, 1TB storage, 200GB egress",
        category="database",
        spec=WorkloadSpec(
            compute=ComputeRequest(vcpus=8, memory_gb=64, count=1),
            storage=StorageRequest(block_gb=1000),
            egress=EgressRequest(monthly_gb=200)
        )
    ),
    Preset(
        name="kubernetes-cluster",
        description="Standard 3-node Kubernetes cluster",
        summary="3 nodes × 4 vCPU × 16GB, 300GB storage, 500GB egress",
        category="kubernetes",
        spec=WorkloadSpec(
            storage=StorageRequest(block_gb=300),
            egress=EgressRequest(monthly_gb=500),
            kubernetes=KubernetesRequest(node_count=3, node_vcpus=4, node_memory_gb=16)
        )
    ),
    Preset(
        name="data-lake",
        description="Object storage-heavy analytics workload (100TB)",
        summary="16 vCPU, 128GB RAM, 100TB object storage, 5TB egress",
        category="analytics",
        spec=WorkloadSpec(
            compute=ComputeRequest(vcpus=16, memory_gb=128, count=1),
            storage=StorageRequest(object_gb=100000),
            egress=EgressRequest(monthly_gb=5000)
        )
    ),
    Preset(
        name="high-egress-cdn",
        description="CDN origin servers with 10TB/month egress",
        summary="2x 2 vCPU, 4GB RAM, 200GB object, 10TB egress",
        category="networking",
        spec=WorkloadSpec(
            compute=ComputeRequest(vcpus=2, memory_gb=4, count=2),
            storage=StorageRequest(object_gb=200),
            egress=EgressRequest(monthly_gb=10000)
        )
    ),
    Preset(
        name="ml-training",
        description="CPU-based ML training cluster (no GPU)",
        summary="2x 8 vCPU, 32GB RAM, 500GB object storage, 1TB egress",
        category="ml",
        spec=WorkloadSpec(
            compute=ComputeRequest(vcpus=8, memory_gb=32, count=2),
            storage=StorageRequest(object_gb=500),
            egress=EgressRequest(monthly_gb=1000)
        )
    ),
    # GPU presets price the host's vCPU/memory envelope, not the accelerators
    Preset(
        name="gpu-inference",
        description="GPU inference server (A10 host equivalent)",
        summary="64 vCPU, 1TB RAM, 500GB block + 1TB object, 2TB egress",
        category="gpu",
        spec=WorkloadSpec(
            compute=ComputeRequest(vcpus=64, memory_gb=1024, count=1),
            storage=StorageRequest(object_gb=1000, block_gb=500),
            egress=EgressRequest(monthly_gb=2000)
        )
    ),
    Preset(
        name="gpu-training-small",
        description="GPU training (A100 host equivalent)",
        summary="128 vCPU, 2TB RAM, 2TB block + 5TB object, 5TB egress",
        category="gpu",
        spec=WorkloadSpec(
            compute=ComputeRequest(vcpus=128, memory_gb=2048, count=1),
            storage=StorageRequest(object_gb=5000, block_gb=2000),
            egress=EgressRequest(monthly_gb=5000)
        )
    ),
    Preset(
        name="gpu-training-large",
        description="Large-scale GPU training (H100 host equivalent)",
        summary="112 vCPU, 2TB RAM, 10TB block + 50TB object, 10TB egress",
        category="gpu",
        spec=WorkloadSpec(
            compute=ComputeRequest(vcpus=112, memory_gb=2048, count=1),
            storage=StorageRequest(object_gb=50000, block_gb=10000),
            egress=EgressRequest(monthly_gb=10000)
        )
    ),
]

PRESETS: Dict[str, Preset] = {preset.name: preset for preset in _PRESETS}


def get_preset(name: str) -> Preset:
    """Look up a preset by name.

    Raises:
        UnknownPresetError: If no preset has that name
    """
    if name not in PRESETS:
        raise UnknownPresetError(name, PRESETS.keys())
    return PRESETS[name]


def get_available_presets() -> List[Preset]:
    """All presets in display order."""
    return list(_PRESETS)
