"""Client-only subtree detection and bundling."""

from .bundle import ClientBundle, ClientBundler, ClientBundleSet
from .detect import ClientComponentInfo, DetectionResult, component_id, detect_client_components

__all__ = [
    "ClientBundle",
    "ClientBundleSet",
    "ClientBundler",
    "ClientComponentInfo",
    "DetectionResult",
    "component_id",
    "detect_client_components",
]
