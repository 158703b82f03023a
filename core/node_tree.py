#!/usr/bin/env python3
"""
Node Tree Module
Optional materialized node tree for callers that already hold a whole document.

The emitters themselves never build a tree; FbxNode exists so that front ends
(JSON conversion, tests, scripted exports) can describe a document up front and
replay it as start/end events.
"""

from dataclasses import dataclass, field
from typing import List

from .properties import Property


@dataclass
class FbxNode:
    """Named FBX node with ordered properties and child nodes

    Attributes:
        name: Node name (e.g., "Objects", "Model", "Vertices")
        properties: Ordered property list
        children: Nested child nodes
    """
    name: str
    properties: List[Property] = field(default_factory=list)
    children: List['FbxNode'] = field(default_factory=list)

    def add_child(self, name, *properties):
        """Append and return a new child node"""
        child = FbxNode(name, list(properties))
        self.children.append(child)
        return child

    def count_nodes(self):
        """Number of nodes in this subtree, including self"""
        count = 0
        stack = [self]
        while stack:
            node = stack.pop()
            count += 1
            stack.extend(node.children)
        return count
