"""Kubernetes control-plane access for kubegate.

Exposes:
    ControlPlane            -- protocol every dispatcher depends on.
    KubernetesControlPlane  -- kubernetes-asyncio implementation.
    DRY_RUN_ALL             -- value of the dryRun query parameter.
"""

from kubegate.kube.client import DRY_RUN_ALL, ControlPlane, KubernetesControlPlane

__all__ = ["DRY_RUN_ALL", "ControlPlane", "KubernetesControlPlane"]
