"""kubegate: guarded Kubernetes cluster-management tools for MCP clients."""

__version__ = "0.1.0"
