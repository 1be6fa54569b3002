"""
Manifest Registry

Keyed store of (type id, version) -> Manifest with latest-version
resolution per type.

Architecture:
- Registered once at process start, then frozen
- Kept in memory as a process-wide singleton
- Writes serialized by a lock, reads lock-free dict lookups
- Overwriting an existing (id, version) is only allowed in development mode
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

from assessflow.config import settings
from assessflow.questions.manifest import Manifest

logger = logging.getLogger(__name__)


class RegistryError(Exception):
    """Base error for registry operations."""

    pass


class DuplicateManifestError(RegistryError):
    """(id, version) already registered and overwrites are disabled."""

    pass


class RegistryFrozenError(RegistryError):
    """Registration attempted after the registry was frozen."""

    pass


class UnknownQuestionTypeError(RegistryError):
    """No manifest registered for the requested type."""

    pass


@dataclass(frozen=True)
class TypeSummary:
    id: str
    name: str
    latest_version: int


class ManifestRegistry:
    """In-memory registry of question type manifests."""

    def __init__(self, dev_mode: bool | None = None):
        """Initialize registry.

        Args:
            dev_mode: Allow overwriting a registered (id, version) with a warning.
                      Defaults to settings.REGISTRY_DEV_MODE
        """
        self.dev_mode = settings.REGISTRY_DEV_MODE if dev_mode is None else dev_mode
        self._manifests: dict[str, Manifest] = {}
        self._latest: dict[str, int] = {}
        self._write_lock = threading.Lock()
        self._frozen = False

    def register(self, manifest: Manifest) -> None:
        """Register a manifest.

        Raises:
            RegistryFrozenError: If freeze() was already called
            DuplicateManifestError: If the key exists and dev_mode is off
        """
        with self._write_lock:
            if self._frozen:
                raise RegistryFrozenError(
                    f"Cannot register {manifest.key}: registry is frozen"
                )

            if manifest.key in self._manifests:
                if not self.dev_mode:
                    raise DuplicateManifestError(f"Manifest {manifest.key} is already registered")
                logger.warning(f"Registry: Overwriting existing manifest for {manifest.key}")

            self._manifests[manifest.key] = manifest

            # Latest only ever moves up
            if manifest.version > self._latest.get(manifest.id, 0):
                self._latest[manifest.id] = manifest.version

        logger.info(f"Registered question type: {manifest.key}")

    def freeze(self) -> None:
        """End the initialization phase. Further registrations are rejected."""
        with self._write_lock:
            self._frozen = True

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    def get(self, type_id: str, version: int | None = None) -> Manifest | None:
        """Get a manifest.

        Args:
            type_id: Type id
            version: Exact version, or None for the latest

        Returns:
            Manifest, or None if not registered
        """
        target = version if version is not None else self._latest.get(type_id)
        if target is None:
            return None
        return self._manifests.get(f"{type_id}:{target}")

    def require(self, type_id: str, version: int | None = None) -> Manifest:
        """Like get(), but raises UnknownQuestionTypeError when missing."""
        manifest = self.get(type_id, version)
        if manifest is None:
            available = ", ".join(sorted(self._manifests))
            wanted = type_id if version is None else f"{type_id}:{version}"
            raise UnknownQuestionTypeError(
                f"Question type '{wanted}' is not registered.\nAvailable types: {available}"
            )
        return manifest

    def list_types(self) -> list[TypeSummary]:
        """One summary per type id, describing its latest version."""
        summaries = []
        for type_id in sorted(self._latest):
            latest = self.get(type_id)
            if latest is not None:
                summaries.append(
                    TypeSummary(id=latest.id, name=latest.name, latest_version=latest.version)
                )
        return summaries

    def __len__(self) -> int:
        return len(self._manifests)

    def __contains__(self, key: str) -> bool:
        """Check for an 'id:version' key or a bare type id."""
        return key in self._manifests or key in self._latest

    def __repr__(self) -> str:
        return f"ManifestRegistry(types={len(self._latest)}, manifests={len(self._manifests)})"


# Global singleton instance
_registry: ManifestRegistry | None = None


def get_registry(force_reload: bool = False) -> ManifestRegistry:
    """Get the process-wide registry, pre-loaded with built-in types and frozen.

    Args:
        force_reload: Rebuild the registry (default: False)

    Returns:
        ManifestRegistry instance
    """
    global _registry

    if _registry is None or force_reload:
        from assessflow.questions.types import register_builtin_types

        registry = ManifestRegistry()
        register_builtin_types(registry)
        registry.freeze()
        _registry = registry

    return _registry
