from __future__ import annotations

from budget_engine.initialization import (
    DEFAULT_CATEGORY_STRUCTURE,
    DEFAULT_SOURCES,
    InitializationService,
)
from budget_engine.store import SqlBudgetStore


def test_seeds_defaults_once(store: SqlBudgetStore):
    assert InitializationService(store).run() is True
    assert InitializationService(store).run() is False

    categories = store.list_categories()
    groups = [c for c in categories if c["parent_id"] is None]
    expected_subgroups = sum(len(subs) for _, subs in DEFAULT_CATEGORY_STRUCTURE)
    assert [g["name"] for g in groups] == [name for name, _ in DEFAULT_CATEGORY_STRUCTURE]
    assert len(categories) - len(groups) == expected_subgroups
    assert [s["name"] for s in store.list_sources()] == list(DEFAULT_SOURCES)


def test_subgroups_point_at_their_group(store: SqlBudgetStore):
    InitializationService(store, categories=[("Pets", ("Food", "Vet"))], sources=[]).run()

    parent, *children = store.list_categories()
    assert parent["name"] == "Pets"
    assert [(c["name"], c["parent_id"]) for c in children] == [
        ("Food", parent["id"]),
        ("Vet", parent["id"]),
    ]


def test_injected_check_controls_seeding(store: SqlBudgetStore):
    calls: list[int] = []

    def already_done() -> bool:
        calls.append(1)
        return True

    assert InitializationService(store, is_initialized=already_done).run() is False
    assert calls == [1]
    assert store.list_categories() == []
    assert store.list_sources() == []


class _RecordingStore:
    def __init__(self) -> None:
        self.categories: list[tuple[str, int | None]] = []
        self.sources: list[str] = []

    def add_category(self, name: str, *, parent_id: int | None = None) -> int:
        self.categories.append((name, parent_id))
        return len(self.categories)

    def add_source(self, name: str) -> int:
        self.sources.append(name)
        return len(self.sources)

    def has_reference_data(self) -> bool:
        return bool(self.categories or self.sources)


def test_works_against_any_reference_store():
    fake = _RecordingStore()
    service = InitializationService(fake, categories=[("A", ("a1",))], sources=["S"])

    assert service.run() is True
    assert service.run() is False
    assert fake.categories == [("A", None), ("a1", 1)]
    assert fake.sources == ["S"]
