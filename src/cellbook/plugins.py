"""Plugin discovery via Python entry points."""

from importlib.metadata import entry_points
from typing import Any

from cellbook.protocols import SandboxBackend

BACKEND_GROUPS = {
    "sandbox": "cellbook.backends.sandbox",
}


def discover_backends(group: str) -> dict[str, Any]:
    """Discover all registered backends for a given group.

    Args:
        group: The backend group name (sandbox)

    Returns:
        Dictionary mapping backend names to their entry points
    """
    full_group = BACKEND_GROUPS.get(group, group)
    return {ep.name: ep for ep in entry_points(group=full_group)}


def get_backend(group: str, name: str) -> Any:
    """Get a specific backend class by group and name.

    Only the requested entry point is loaded, so optional SDKs behind
    other backends are not imported.

    Args:
        group: The backend group name (sandbox)
        name: The backend name (e.g., "e2b", "local")

    Returns:
        The backend class

    Raises:
        ValueError: If the backend is not found
    """
    backends = discover_backends(group)
    if name not in backends:
        available = ", ".join(sorted(backends.keys())) or "(none)"
        raise ValueError(
            f"Backend '{name}' not found in group '{group}'. Available: {available}"
        )
    return backends[name].load()


def create_sandbox_backend(backend: str, **kwargs: Any) -> SandboxBackend:
    """Create a SandboxBackend instance.

    Args:
        backend: The backend name (e.g., "e2b", "local")
        **kwargs: Backend-specific configuration

    Returns:
        A SandboxBackend implementation
    """
    cls = get_backend("sandbox", backend)
    return cls(**kwargs)
