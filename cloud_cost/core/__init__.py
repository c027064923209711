"""
Core modules for Cloud Cost.

This package contains the pricing arithmetic, the cross-cloud comparison
engine, workload estimation and the named workload presets.
"""
