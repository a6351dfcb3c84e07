"""Browse filters offered to the presentation layer."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class CategoryOption:
    label: str
    parent_id: str


@dataclass(frozen=True, slots=True)
class SortOption:
    label: str
    field: str


CATEGORY_OPTIONS: tuple[CategoryOption, ...] = (
    CategoryOption("All", ""),
    CategoryOption("Movies (Anime)", "9403711afa65061e9967086eac702a66"),
    CategoryOption("Movies (Asian)", "27dcfec804e37e6fb3104d8f631ea57f"),
    CategoryOption("Movies (English)", "6bb2c3ec9d67c18652f0dab47bd9ee2e"),
    CategoryOption("Movies (Foreign)", "ac15933b5a8f0721ce5f929f1cc3668e"),
    CategoryOption("Movies (Indian)", "76c327c29a53c7380a05858d7c871402"),
    CategoryOption("TV Shows (Asian)", "2dfef46d25ad65cf8fc4b0d882567a25"),
    CategoryOption("TV Shows (English)", "58b107e1ff3124b9a07ffb3501cc89f2"),
    CategoryOption("TV Shows (Indian)", "83f92a8e94d2e1a200fa9d5399a801f6"),
)

SORT_OPTIONS: tuple[SortOption, ...] = (
    SortOption("Name", "SortName"),
    SortOption("Date Added", "DateCreated"),
    SortOption("Premiere Date", "ProductionYear"),
)


def _match(label: str, options):
    normalized = label.strip().casefold()
    for option in options:
        if option.label.casefold() == normalized:
            return option
    return None


@dataclass(frozen=True, slots=True)
class BrowseFilters:
    """Category and sort selections for a search request."""

    category: CategoryOption | None = None
    sort: SortOption | None = None
    ascending: bool = False

    @classmethod
    def from_labels(
        cls,
        category: str | None = None,
        sort: str | None = None,
        ascending: bool = False,
    ) -> "BrowseFilters":
        """Resolve user-facing labels, raising ``ValueError`` on unknown ones."""

        category_option = None
        if category:
            category_option = _match(category, CATEGORY_OPTIONS)
            if category_option is None:
                raise ValueError(f"Unknown category: {category}")
        sort_option = None
        if sort:
            sort_option = _match(sort, SORT_OPTIONS)
            if sort_option is None:
                raise ValueError(f"Unknown sort option: {sort}")
        return cls(category=category_option, sort=sort_option, ascending=ascending)

    @property
    def parent_id(self) -> str | None:
        if self.category is None or not self.category.parent_id:
            return None
        return self.category.parent_id

    @property
    def sort_by(self) -> str | None:
        return self.sort.field if self.sort is not None else None

    @property
    def sort_order(self) -> str | None:
        if self.sort is None:
            return None
        return "Ascending" if self.ascending else "Descending"


def describe_filters() -> dict[str, list[str]]:
    """Return the option labels for rendering filter controls."""

    return {
        "categories": [option.label for option in CATEGORY_OPTIONS],
        "sorts": [option.label for option in SORT_OPTIONS],
    }
