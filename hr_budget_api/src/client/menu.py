from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional, Set

HIDDEN = "none"


@dataclass
class MenuElement:
    """
    In-memory stand-in for a page element the menu logic touches.

    `data_role` mirrors the `data-role` attribute (comma separated role codes),
    `display` mirrors `style.display` ("" = visible, "none" = hidden) and
    `classes` mirrors `classList`.
    """

    id: Optional[str] = None
    data_role: Optional[str] = None
    display: str = ""
    text: str = ""
    classes: Set[str] = field(default_factory=set)

    @property
    def visible(self) -> bool:
        return self.display != HIDDEN

    def show(self) -> None:
        self.display = ""

    def hide(self) -> None:
        self.display = HIDDEN

    @property
    def class_name(self) -> str:
        return " ".join(sorted(self.classes))

    @class_name.setter
    def class_name(self, value: str) -> None:
        self.classes = set(value.split())


class MenuDocument:
    """A flat collection of MenuElements addressable by id or by data-role."""

    def __init__(self, elements: Optional[Iterable[MenuElement]] = None) -> None:
        self._elements: List[MenuElement] = []
        self._by_id: Dict[str, MenuElement] = {}
        for el in elements or ():
            self.add(el)

    def add(self, element: MenuElement) -> MenuElement:
        self._elements.append(element)
        if element.id:
            self._by_id[element.id] = element
        return element

    def get_element_by_id(self, element_id: str) -> Optional[MenuElement]:
        return self._by_id.get(element_id)

    def with_data_role(self) -> Iterator[MenuElement]:
        """Elements carrying a data-role attribute, in insertion order."""
        return (el for el in self._elements if el.data_role is not None)

    def __iter__(self) -> Iterator[MenuElement]:
        return iter(self._elements)

    def __len__(self) -> int:
        return len(self._elements)
