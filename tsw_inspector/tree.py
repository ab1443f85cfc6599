from __future__ import annotations

import re
import threading
from collections.abc import Iterable, Sequence
from dataclasses import replace

from .models import ApiNode


def _matches(node: ApiNode, needle: str) -> bool:
    return needle in node.node_name.lower() or needle in node.node_path.lower()


def filter_nodes(nodes: Sequence[ApiNode], term: str) -> list[ApiNode]:
    """Return the subtree of ``nodes`` matching ``term``.

    A node is kept when its name or path contains the term (case-insensitive)
    or when any descendant does. Kept nodes carry only their filtered
    children. The input is never mutated; a blank term returns the nodes
    unchanged and in order.
    """
    if not term or not term.strip():
        return list(nodes)
    return _filter(nodes, term.lower())


def _filter(nodes: Iterable[ApiNode], needle: str) -> list[ApiNode]:
    filtered: list[ApiNode] = []
    for node in nodes:
        children = _filter(node.nodes, needle) if node.nodes else []
        if _matches(node, needle) or children:
            filtered.append(replace(node, nodes=children if node.nodes is not None else None))
    return filtered


def iter_nodes(nodes: Iterable[ApiNode]) -> Iterable[ApiNode]:
    for node in nodes:
        yield node
        if node.nodes:
            yield from iter_nodes(node.nodes)


def count_nodes(nodes: Sequence[ApiNode], recursive: bool = False) -> int:
    """Count for the "Found N matching nodes" label; top level unless ``recursive``."""
    if recursive:
        return sum(1 for _ in iter_nodes(nodes))
    return len(nodes)


def highlight_segments(text: str, term: str | None) -> list[tuple[str, bool]]:
    """Split ``text`` into ``(segment, matched)`` pairs for the search term."""
    if not term or not term.strip():
        return [(text, False)]

    pattern = re.compile(re.escape(term), re.IGNORECASE)
    segments: list[tuple[str, bool]] = []
    cursor = 0
    for match in pattern.finditer(text):
        if match.start() > cursor:
            segments.append((text[cursor : match.start()], False))
        segments.append((match.group(0), True))
        cursor = match.end()
    if cursor < len(text):
        segments.append((text[cursor:], False))
    return segments or [(text, False)]


class TreeExpansion:
    """Expanded node paths of the browse tree, owned outside the nodes."""

    def __init__(self) -> None:
        self._expanded: set[str] = set()
        self._lock = threading.Lock()

    def is_expanded(self, node_path: str) -> bool:
        with self._lock:
            return node_path in self._expanded

    def toggle(self, node_path: str) -> bool:
        with self._lock:
            if node_path in self._expanded:
                self._expanded.discard(node_path)
                return False
            self._expanded.add(node_path)
            return True

    def expand_for_search(self, nodes: Iterable[ApiNode]) -> None:
        # While searching, every visible node with children is opened.
        paths = {node.node_path for node in iter_nodes(nodes) if node.has_children}
        with self._lock:
            self._expanded |= paths

    def expanded_paths(self) -> list[str]:
        with self._lock:
            return sorted(self._expanded)

    def clear(self) -> None:
        with self._lock:
            self._expanded.clear()
