"""Domain error hierarchy."""

from __future__ import annotations


class GearscoutError(RuntimeError):
    """Base class for domain-level failures."""


class StoreError(GearscoutError):
    """A store operation failed and retrying will not help."""


class TransientStoreError(StoreError):
    """A store write failed in a way that may succeed when retried."""


class RunLockHeldError(GearscoutError):
    """Another ingestion run holds the lock; operator intervention required."""


class MergePreconditionError(GearscoutError):
    """A destructive merge was requested without a matching dry-run preview."""


class VariantMergeError(GearscoutError):
    """Variant duplicate groups are never merged automatically."""


class ReviewError(GearscoutError):
    """An invalid human-review transition was requested."""


class ListingNotFoundError(GearscoutError):
    """No match result exists for the requested permalink."""


class CatalogEntryNotFoundError(GearscoutError):
    """No catalog entry exists for the requested id."""
