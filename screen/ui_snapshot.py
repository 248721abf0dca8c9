"""
Owned snapshots of an application's on-screen UI tree.

A snapshot is an arena: every node lives in one flat list and refers to its
children by index. The tree is rebuilt for each accessibility event and owns
no external resources, so traversal can stop at any point without leaking.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)

# Accepted spellings for each node field: ours first, then the names used by
# accessibility dumps
_FIELD_ALIASES = {
    "identifier": ("identifier", "viewIdResourceName", "resource_id", "resource-id"),
    "type_name": ("type_name", "className", "class"),
    "description": ("description", "contentDescription", "content-desc"),
    "text": ("text",),
}


@dataclass(frozen=True)
class UiNode:
    """A single node of a UI snapshot."""
    identifier: str = ""
    type_name: str = ""
    description: str = ""
    text: str = ""
    children: Tuple[int, ...] = ()

    def searchable_fields(self) -> Tuple[str, str, str, str]:
        """Fields scanned by the feed classifier, in scan order."""
        return (self.identifier, self.type_name, self.description, self.text)


class UiSnapshot:
    """
    Arena of UiNodes for one screen. Index 0 is the root.

    Nodes are never shared between snapshots and the arena has no cycles
    by construction: a child index is always greater than its parent's.
    """

    def __init__(self, nodes: Optional[List[UiNode]] = None):
        self._nodes: List[UiNode] = list(nodes or [])

    def __len__(self) -> int:
        return len(self._nodes)

    @property
    def root(self) -> Optional[UiNode]:
        return self._nodes[0] if self._nodes else None

    def node(self, index: int) -> UiNode:
        """
        Get a node by arena index.

        Raises:
            IndexError: If the index does not refer to a node of this snapshot.
        """
        if index < 0:
            raise IndexError(f"Negative node index {index}")
        return self._nodes[index]

    @classmethod
    def from_dict(cls, tree: Mapping[str, Any]) -> "UiSnapshot":
        """
        Build a snapshot from a nested mapping.

        Each mapping may carry identifier/type_name/description/text (or the
        accessibility API names viewIdResourceName/className/
        contentDescription) and a "children" list. Children that are not
        mappings are skipped. Built iteratively so arbitrarily deep dumps
        cannot exhaust the interpreter stack.

        Args:
            tree: Root node mapping.

        Returns:
            New UiSnapshot. Empty if tree is not a mapping.
        """
        if not isinstance(tree, Mapping):
            logger.debug(f"Snapshot root is {type(tree).__name__}, not a mapping")
            return cls()

        # Breadth-first so a node's children get consecutive indices
        raw: List[Mapping[str, Any]] = [tree]
        child_indices: List[List[int]] = [[]]
        cursor = 0
        while cursor < len(raw):
            children = raw[cursor].get("children") or []
            if isinstance(children, (list, tuple)):
                for child in children:
                    if not isinstance(child, Mapping):
                        continue
                    child_indices[cursor].append(len(raw))
                    raw.append(child)
                    child_indices.append([])
            cursor += 1

        nodes = [
            UiNode(
                children=tuple(child_indices[i]),
                **{name: _read_field(data, aliases) for name, aliases in _FIELD_ALIASES.items()},
            )
            for i, data in enumerate(raw)
        ]
        return cls(nodes)


def _read_field(data: Mapping[str, Any], aliases: Tuple[str, ...]) -> str:
    """
    Return the first present alias value as a string.

    Scalars (numbers, booleans) are stringified; missing fields and
    non-scalar values (lists, nested mappings) become ''.
    """
    for key in aliases:
        value = data.get(key)
        if value is None:
            continue
        if isinstance(value, (str, int, float)):
            return str(value)
        return ""
    return ""


def snapshot_from_dict(tree: Optional[Dict[str, Any]]) -> UiSnapshot:
    """Convenience wrapper tolerating a missing tree."""
    if tree is None:
        return UiSnapshot()
    return UiSnapshot.from_dict(tree)
