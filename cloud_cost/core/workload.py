"""
Workload specifications.

Describes the bundle of compute, storage, egress and Kubernetes
requirements a caller wants priced together. Every section is optional;
an absent section prices to zero.
"""

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

# Accepted spellings for each field, mapped to the dataclass attribute
_COMPUTE_KEYS = {'vcpus': 'vcpus', 'memory_gb': 'memory_gb', 'memoryGB': 'memory_gb', 'count': 'count'}
_STORAGE_KEYS = {'object_gb': 'object_gb', 'objectGB': 'object_gb', 'block_gb': 'block_gb', 'blockGB': 'block_gb'}
_EGRESS_KEYS = {'monthly_gb': 'monthly_gb', 'monthlyGB': 'monthly_gb'}
_KUBERNETES_KEYS = {
    'node_count': 'node_count', 'nodeCount': 'node_count',
    'node_vcpus': 'node_vcpus', 'nodeVcpus': 'node_vcpus',
    'node_memory_gb': 'node_memory_gb', 'nodeMemoryGB': 'node_memory_gb',
}


def _require_non_negative(value: Optional[float], name: str) -> None:
    if value is not None and value < 0:
        raise ValueError(f"{name} cannot be negative")


@dataclass(frozen=True)
class ComputeRequest:
    """Instances of one shape."""
    vcpus: float
    memory_gb: float
    count: int = 1

    def __post_init__(self):
        if self.count is None:
            object.__setattr__(self, "count", 1)
        _require_non_negative(self.vcpus, "compute.vcpus")
        _require_non_negative(self.memory_gb, "compute.memory_gb")
        if self.count < 1:
            raise ValueError("compute.count must be >= 1")


@dataclass(frozen=True)
class StorageRequest:
    """Hot object and/or block storage."""
    object_gb: Optional[float] = None
    block_gb: Optional[float] = None

    def __post_init__(self):
        _require_non_negative(self.object_gb, "storage.object_gb")
        _require_non_negative(self.block_gb, "storage.block_gb")


@dataclass(frozen=True)
class EgressRequest:
    """Monthly internet egress volume."""
    monthly_gb: float

    def __post_init__(self):
        if self.monthly_gb is None:
            raise ValueError("egress.monthly_gb is required")
        _require_non_negative(self.monthly_gb, "egress.monthly_gb")


@dataclass(frozen=True)
class KubernetesRequest:
    """Managed cluster with identical worker nodes."""
    node_count: int
    node_vcpus: float
    node_memory_gb: float

    def __post_init__(self):
        if self.node_count is None or self.node_count < 1:
            raise ValueError("kubernetes.node_count must be >= 1")
        _require_non_negative(self.node_vcpus, "kubernetes.node_vcpus")
        _require_non_negative(self.node_memory_gb, "kubernetes.node_memory_gb")


@dataclass(frozen=True)
class WorkloadSpec:
    """A workload to price across providers."""
    compute: Optional[ComputeRequest] = None
    storage: Optional[StorageRequest] = None
    egress: Optional[EgressRequest] = None
    kubernetes: Optional[KubernetesRequest] = None

    @property
    def is_empty(self) -> bool:
        return all(
            section is None
            for section in (self.compute, self.storage, self.egress, self.kubernetes)
        )

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "WorkloadSpec":
        """Build a spec from a plain mapping.

        Field names may be snake_case (memory_gb) or camelCase (memoryGB).

        Raises:
            ValueError: If a section or field is unknown or invalid
        """
        if not data:
            return cls()
        if not isinstance(data, Mapping):
            raise ValueError("workload spec must be a mapping")

        allowed = {'compute', 'storage', 'egress', 'kubernetes'}
        unknown = set(data.keys()) - allowed
        if unknown:
            raise ValueError(f"Unknown workload sections: {sorted(unknown)}")

        return cls(
            compute=_build(ComputeRequest, data.get('compute'), _COMPUTE_KEYS, 'compute'),
            storage=_build(StorageRequest, data.get('storage'), _STORAGE_KEYS, 'storage'),
            egress=_build(EgressRequest, data.get('egress'), _EGRESS_KEYS, 'egress'),
            kubernetes=_build(KubernetesRequest, data.get('kubernetes'), _KUBERNETES_KEYS, 'kubernetes')
        )


def _build(request_cls, section: Any, key_map: Dict[str, str], name: str):
    if section is None:
        return None
    if not isinstance(section, Mapping):
        raise ValueError(f"'{name}' must be a mapping")

    unknown = set(section.keys()) - set(key_map)
    if unknown:
        raise ValueError(f"Unknown keys in {name}: {sorted(unknown)}")

    kwargs = {key_map[key]: value for key, value in section.items() if value is not None}
    if not kwargs:
        # A section with nothing set prices to zero, same as leaving it out
        return None
    try:
        return request_cls(**kwargs)
    except TypeError as e:
        raise ValueError(f"Invalid {name} section: {e}")
