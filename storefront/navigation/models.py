"""
Navigation Models

NavNode tree, flat slug map, and the cached NavigationIndex deliverable.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class NavNode(BaseModel):
    """A node of the category tree. Children keep source order."""

    label: str
    slug: str = Field(..., description="Path of slugified labels below the menu root, unique per tree")
    segment: str = Field(..., description="Last URL path segment of the slug")
    category_id: Optional[str] = Field(None, description="Taxonomy identifier (label path)")
    sku_count: int = Field(0, description="Distinct SKUs at or below this node")
    children: List["NavNode"] = Field(default_factory=list)

    def walk(self):
        """Depth-first pre-order traversal, self first."""
        yield self
        for child in self.children:
            yield from child.walk()


NavNode.model_rebuild()


SlugMap = Dict[str, NavNode]


class NavigationIndex(BaseModel):
    """Tree and slug map, always built together."""

    menu_key: str
    tree: NavNode
    slug_map: SlugMap
    updated_at: datetime

    def to_payload(self) -> dict:
        """Wire shape of the navigation read endpoint."""
        return {
            "updated_at": self.updated_at.isoformat(),
            "tree": self.tree.model_dump(mode="json"),
            "slug_map": {slug: node.model_dump(mode="json") for slug, node in self.slug_map.items()},
        }
