"""Recency index for LRU ordering.

A doubly linked list with sentinel head/tail nodes. Callers keep a reference
to each :class:`Node` (the lookup table stores them directly), so moving or
removing an arbitrary key never requires a scan.
"""

from __future__ import annotations

from typing import Any, Generic, Iterator, Optional, TypeVar, cast

K = TypeVar("K")


class Node(Generic[K]):
    """One position in the recency index."""

    __slots__ = ("key", "prev", "next")

    def __init__(self, key: K) -> None:
        self.key = key
        self.prev: Optional[Node[K]] = None
        self.next: Optional[Node[K]] = None


class RecencyIndex(Generic[K]):
    """Keys ordered from most- to least-recently touched.

    Not thread-safe on its own; the owning cache serializes access.
    """

    def __init__(self) -> None:
        # sentinels avoid None checks at the ends
        self._head: Node[Any] = Node(None)
        self._tail: Node[Any] = Node(None)
        self._head.next = self._tail
        self._tail.prev = self._head
        self._size = 0

    def __len__(self) -> int:
        return self._size

    def __iter__(self) -> Iterator[K]:
        node = cast(Node[K], self._head.next)
        while node is not self._tail:
            yield node.key
            node = cast(Node[K], node.next)

    def push_front(self, node: Node[K]) -> None:
        """Link a detached node at the front."""
        first = cast(Node[K], self._head.next)
        node.prev = self._head
        node.next = first
        first.prev = node
        self._head.next = node
        self._size += 1

    def remove(self, node: Node[K]) -> None:
        """Unlink a node currently in the index."""
        prev, nxt = node.prev, node.next
        if prev is None or nxt is None:
            raise ValueError(f"node for key {node.key!r} is not linked")
        prev.next = nxt
        nxt.prev = prev
        node.prev = None
        node.next = None
        self._size -= 1

    def move_to_front(self, node: Node[K]) -> None:
        if self._head.next is node:
            return
        self.remove(node)
        self.push_front(node)

    def tail(self) -> Optional[Node[K]]:
        """Return the least recently touched node, or None when empty."""
        last = self._tail.prev
        if last is self._head:
            return None
        return last
