"""Guard-and-dispatch layer for kubegate tools.

Submodules:
    manifest    -- multi-document YAML decoding into valid/invalid documents.
    identifier  -- ResourceIdentifier resolution with the default namespace.
    resources   -- resources.get / resources.apply / resources.delete.
    secrets     -- secrets.get / secrets.set with redaction.
    workloads   -- pods.listPods / pods.get / pods.logs / pods.exec.
    cluster     -- cluster.health / cluster.listContexts / cluster.setContext / ns.listNamespaces.
"""

from kubegate.dispatch.cluster import ClusterDispatcher
from kubegate.dispatch.resources import ResourceDispatcher
from kubegate.dispatch.secrets import SecretDispatcher
from kubegate.dispatch.workloads import WorkloadDispatcher

__all__ = [
    "ClusterDispatcher",
    "ResourceDispatcher",
    "SecretDispatcher",
    "WorkloadDispatcher",
]
