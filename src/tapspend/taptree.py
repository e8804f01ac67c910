"""
Taptree construction (BIP-341 script tree commitment).

Leaves are paired bottom-up in the order given; an odd node at the end of a
level moves up unchanged. A nested sequence inside the leaf list is built
as its own subtree first, which lets callers pin an uneven shape. Branch
hashes sort their two children lexicographically, so the root does not
depend on which side a leaf sits.
"""
from __future__ import annotations

import collections.abc
import logging
from dataclasses import dataclass
from typing import Any, List, Sequence, Tuple, Union

from .errors import TreeError
from .tapscript import Leaf, tagged_sha256

log = logging.getLogger(__name__)

TAPROOT_CONTROL_MAX_NODE_COUNT = 128


def tapbranch_hash(a: bytes, b: bytes) -> bytes:
    if a > b:
        a, b = b, a
    return tagged_sha256('TapBranch', a + b)


@dataclass(frozen=True)
class TapLeafNode:
    leaf: Leaf
    hash: bytes


@dataclass(frozen=True)
class TapBranch:
    left: 'TapNode'
    right: 'TapNode'
    hash: bytes


TapNode = Union[TapLeafNode, TapBranch]


@dataclass(frozen=True)
class TapTree:
    """A built script tree.

    Attributes:
        root: root node (a TapLeafNode when there is a single leaf).
        leaves: leaves in the order they were supplied, depth-first.
        paths: for each leaf, the sibling hashes from the leaf up to the root.
    """
    root: TapNode
    leaves: Tuple[Leaf, ...]
    paths: Tuple[Tuple[bytes, ...], ...]

    @property
    def merkle_root(self) -> bytes:
        return self.root.hash

    def _check_index(self, index: int) -> None:
        if index < 0 or index >= len(self.leaves):
            raise IndexError(f'leaf index {index} out of range (num_leaves={len(self.leaves)})')

    def merkle_path(self, index: int) -> Tuple[bytes, ...]:
        self._check_index(index)
        return self.paths[index]

    def depth(self, index: int) -> int:
        return len(self.merkle_path(index))


class _Subtree:
    __slots__ = ('node', 'members')

    def __init__(self, node: TapNode, members: List[Tuple[int, List[bytes]]]) -> None:
        self.node = node
        self.members = members


def _combine(left: _Subtree, right: _Subtree) -> _Subtree:
    for _idx, path in left.members:
        path.append(right.node.hash)
    for _idx, path in right.members:
        path.append(left.node.hash)
    node = TapBranch(left.node, right.node, tapbranch_hash(left.node.hash, right.node.hash))
    return _Subtree(node, left.members + right.members)


def _build_element(item: Any, leaves: List[Leaf]) -> _Subtree:
    if isinstance(item, Leaf):
        idx = len(leaves)
        leaves.append(item)
        return _Subtree(TapLeafNode(item, item.leaf_hash), [(idx, [])])
    return _build_level(item, leaves)


def _build_level(items: Any, leaves: List[Leaf]) -> _Subtree:
    if isinstance(items, (bytes, bytearray, str)) or not isinstance(items, collections.abc.Sequence):
        raise TreeError(f'tree element must be a Leaf or a sequence, got {type(items).__name__}')
    if not items:
        raise TreeError('taptree needs at least one leaf')
    level = [_build_element(x, leaves) for x in items]
    while len(level) > 1:
        nxt = [_combine(level[i], level[i + 1]) for i in range(0, len(level) - 1, 2)]
        if len(level) % 2:
            nxt.append(level[-1])
        level = nxt
    return level[0]


def build_taptree(leaves: Sequence[Any]) -> TapTree:
    """Build the commitment tree for ``leaves``.

    Raises:
        TreeError: the leaf set (or a nested subtree) is empty, an element is
            neither a Leaf nor a sequence, or a leaf sits deeper than 128.
    """
    collected: List[Leaf] = []
    top = _build_level(leaves, collected)
    paths: List[Tuple[bytes, ...]] = [()] * len(collected)
    for idx, path in top.members:
        if len(path) > TAPROOT_CONTROL_MAX_NODE_COUNT:
            raise TreeError(f'leaf {idx} is deeper than {TAPROOT_CONTROL_MAX_NODE_COUNT}')
        paths[idx] = tuple(path)
    tree = TapTree(top.node, tuple(collected), tuple(paths))
    log.debug('built taptree: %d leaves, merkle root %s', len(collected), tree.merkle_root.hex())
    return tree
