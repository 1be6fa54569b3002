"""
Question Types

Versioned question type manifests, the registry that resolves them, and
transformers for migrating documents between shapes.
"""

from .manifest import Manifest, RuntimeBinding
from .registry import (
    DuplicateManifestError,
    ManifestRegistry,
    RegistryError,
    RegistryFrozenError,
    TypeSummary,
    UnknownQuestionTypeError,
    get_registry,
)

__all__ = [
    "DuplicateManifestError",
    "Manifest",
    "ManifestRegistry",
    "RegistryError",
    "RegistryFrozenError",
    "RuntimeBinding",
    "TypeSummary",
    "UnknownQuestionTypeError",
    "get_registry",
]
