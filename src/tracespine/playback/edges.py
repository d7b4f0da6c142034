"""Edge index — resolves the edge traversed between two consecutive steps."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from typing import Any

from tracespine.playback.models import FlowEdge


class EdgeIndex:
    """Lookup of edge ids by exact ``(source, target)`` pair.

    When several edges share a pair, the first one in source order wins.
    Edges may be given as ``FlowEdge`` instances or plain mappings with
    ``id``/``source``/``target`` keys.
    """

    def __init__(self, edges: Iterable[FlowEdge | Mapping[str, Any]] = ()) -> None:
        self._edges: tuple[FlowEdge, ...] = tuple(
            e if isinstance(e, FlowEdge) else FlowEdge.from_dict(e) for e in edges
        )
        self._by_pair: dict[tuple[str, str], str] = {}
        for edge in self._edges:
            self._by_pair.setdefault((edge.source, edge.target), edge.id)

    def find(self, source: str, target: str) -> str | None:
        """Id of the edge from ``source`` to ``target``, or ``None``."""
        return self._by_pair.get((source, target))

    @property
    def edges(self) -> tuple[FlowEdge, ...]:
        return self._edges

    def __len__(self) -> int:
        return len(self._edges)

    def __iter__(self) -> Iterator[FlowEdge]:
        return iter(self._edges)

    def __repr__(self) -> str:
        return f"EdgeIndex({len(self._edges)} edges)"
