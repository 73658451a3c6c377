"""First-run seeding of default expense categories and income sources.

Seeding runs through :class:`InitializationService`, invoked once at startup.
Whether the store is already initialized is decided by an injected check
rather than a process-wide flag, so tests and alternative hosts can supply
their own notion of "already set up".
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Protocol

from .logging_setup import get_logger

logger = get_logger("budget_engine.initialization")

# Two-level default taxonomy: (group, subgroups).
DEFAULT_CATEGORY_STRUCTURE: tuple[tuple[str, tuple[str, ...]], ...] = (
    (
        "Housing",
        (
            "Rent",
            "Condo Fees",
            "Property Tax",
            "Electricity",
            "Water",
            "Gas",
            "Internet/TV",
            "Maintenance",
        ),
    ),
    (
        "Transportation",
        (
            "Fuel",
            "Vehicle Maintenance",
            "Parking",
            "Public Transit",
            "Tolls",
            "Vehicle Tax/Insurance",
        ),
    ),
    ("Food", ("Groceries", "Restaurants", "Delivery", "Snacks")),
    ("Health", ("Health Insurance", "Medication", "Doctor Visits", "Gym")),
    ("Education", ("Tuition", "Courses", "Books & Supplies", "Languages")),
    ("Leisure", ("Streaming", "Movies/Shows", "Travel", "Hobbies")),
    ("Clothing", ("Clothes", "Shoes", "Accessories")),
    ("Personal Care", ("Haircut", "Hygiene", "Cosmetics")),
    ("Other", ("Gifts", "Donations", "Unexpected")),
)

DEFAULT_SOURCES: tuple[str, ...] = ("Salary", "Freelance", "Investments", "Other")


class ReferenceDataStore(Protocol):
    def add_category(self, name: str, *, parent_id: int | None = None) -> int: ...

    def add_source(self, name: str) -> int: ...

    def has_reference_data(self) -> bool: ...


class InitializationService:
    """Seed default reference data unless ``is_initialized()`` says otherwise.

    Parameters
    ----------
    store:
        Store receiving categories and sources.
    is_initialized:
        Persistence check consulted before seeding. Defaults to "the store
        already holds any category or source".
    categories / sources:
        Seed data; defaults to :data:`DEFAULT_CATEGORY_STRUCTURE` and
        :data:`DEFAULT_SOURCES`.
    """

    def __init__(
        self,
        store: ReferenceDataStore,
        *,
        is_initialized: Callable[[], bool] | None = None,
        categories: Sequence[tuple[str, Sequence[str]]] = DEFAULT_CATEGORY_STRUCTURE,
        sources: Sequence[str] = DEFAULT_SOURCES,
    ) -> None:
        self._store = store
        self._is_initialized = is_initialized or store.has_reference_data
        self._categories = categories
        self._sources = sources

    def run(self) -> bool:
        """Seed when needed; return True if anything was written."""

        if self._is_initialized():
            logger.debug("Reference data already present; skipping seeding")
            return False

        logger.info("Seeding default categories and income sources")
        for group, subgroups in self._categories:
            parent_id = self._store.add_category(group)
            for name in subgroups:
                self._store.add_category(name, parent_id=parent_id)
            logger.debug("Added group %s with %d subgroups", group, len(subgroups))
        for name in self._sources:
            self._store.add_source(name)
        logger.info(
            "Seeded %d groups and %d income sources", len(self._categories), len(self._sources)
        )
        return True


__all__ = [
    "DEFAULT_CATEGORY_STRUCTURE",
    "DEFAULT_SOURCES",
    "InitializationService",
]
