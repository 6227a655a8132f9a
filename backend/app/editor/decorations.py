"""View-only overlays anchored to document positions.

Decorations never change document content. A set of them survives document
edits by being mapped through each transaction's position mapping.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal

from backend.app.editor.transform import Mapping

if TYPE_CHECKING:
    from backend.app.editor.schema import Node


DecorationKind = Literal["inline", "widget"]


@dataclass(frozen=True)
class Decoration:
    """Inline range styling or a widget placed at a single position."""

    from_: int
    to: int
    kind: DecorationKind
    attrs: dict[str, str] = field(default_factory=dict)
    spec: dict[str, Any] = field(default_factory=dict)
    widget: Any = None

    @classmethod
    def inline(cls, from_: int, to: int, attrs: dict[str, str], spec: dict[str, Any] | None = None) -> "Decoration":
        return cls(from_, to, "inline", dict(attrs), dict(spec or {}))

    @classmethod
    def create_widget(cls, pos: int, widget: Any, spec: dict[str, Any] | None = None) -> "Decoration":
        return cls(pos, pos, "widget", {}, dict(spec or {}), widget)

    def map(self, mapping: Mapping) -> "Decoration | None":
        if self.kind == "widget":
            result = mapping.map_result(self.from_, 1)
            if result.deleted:
                return None
            return Decoration(result.pos, result.pos, self.kind, self.attrs, self.spec, self.widget)

        from_ = mapping.map(self.from_, 1)
        to = mapping.map(self.to, -1)
        if from_ >= to:
            return None
        return Decoration(from_, to, self.kind, self.attrs, self.spec, self.widget)


class DecorationSet:
    """Immutable collection of decorations sorted by position."""

    def __init__(self, decorations: tuple[Decoration, ...] = ()) -> None:
        self.decorations = tuple(sorted(decorations, key=lambda d: (d.from_, d.to)))

    @classmethod
    def create(cls, doc: "Node", decorations: list[Decoration]) -> "DecorationSet":
        size = doc.content_size
        for deco in decorations:
            if deco.from_ < 0 or deco.to > size or deco.from_ > deco.to:
                raise ValueError(f"Decoration {deco.from_}-{deco.to} outside of document (size {size})")
        return cls(tuple(decorations))

    def find(
        self,
        start: int | None = None,
        end: int | None = None,
        predicate: Callable[[dict[str, Any]], bool] | None = None,
    ) -> list[Decoration]:
        """Decorations touching [start, end], optionally filtered on their spec."""
        found = []
        for deco in self.decorations:
            if start is not None and deco.to < start:
                continue
            if end is not None and deco.from_ > end:
                continue
            if predicate is not None and not predicate(deco.spec):
                continue
            found.append(deco)
        return found

    def map(self, mapping: Mapping, doc: "Node") -> "DecorationSet":
        if not mapping.maps:
            return self
        mapped = [d for d in (deco.map(mapping) for deco in self.decorations) if d is not None]
        size = doc.content_size
        return DecorationSet(tuple(d for d in mapped if d.to <= size))

    def remove(self, decorations: list[Decoration]) -> "DecorationSet":
        return DecorationSet(tuple(d for d in self.decorations if d not in decorations))

    def __len__(self) -> int:
        return len(self.decorations)

    def __iter__(self):
        return iter(self.decorations)


EMPTY = DecorationSet()
