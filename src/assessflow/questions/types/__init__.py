"""
Built-in question types.
"""

from assessflow.questions.manifest import Manifest
from assessflow.questions.registry import ManifestRegistry

from .mcq_branching import MCQBranchingManifestV1, MCQDeclarativeManifestV1
from .multiple_choice import MultipleChoiceManifestV1

BUILTIN_MANIFESTS: tuple[Manifest, ...] = (
    MultipleChoiceManifestV1,
    MCQBranchingManifestV1,
    MCQDeclarativeManifestV1,
)


def register_builtin_types(registry: ManifestRegistry) -> None:
    """Register every built-in manifest on a registry."""
    for manifest in BUILTIN_MANIFESTS:
        registry.register(manifest)


__all__ = [
    "BUILTIN_MANIFESTS",
    "MCQBranchingManifestV1",
    "MCQDeclarativeManifestV1",
    "MultipleChoiceManifestV1",
    "register_builtin_types",
]
