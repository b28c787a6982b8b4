"""
Navigation Builder

Builds the category tree from taxonomy rows and indexes it into a flat
slug map.

Rules:
- Siblings keep first-seen order from the source rows
- A node's slug is the "/"-joined path of slugified labels from the top
  level down; the root's slug is its own slugified key
- The slug map is filled by one traversal and records every node once
- Two nodes producing the same slug is a data defect: SlugCollision,
  nothing is returned
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set

from storefront.errors import StorefrontError

from .models import NavNode, SlugMap
from .slug import slugify

logger = logging.getLogger(__name__)

CATEGORY_ID_SEPARATOR = " > "


class SlugCollision(StorefrontError):
    """Two navigation nodes normalize to the same slug."""

    def __init__(self, slug: str, first_label: str, second_label: str):
        super().__init__(
            f"Slug collision on '{slug}': '{first_label}' and '{second_label}'"
        )
        self.slug = slug
        self.labels = (first_label, second_label)


@dataclass
class TaxonomyRow:
    """One SKU's position in the taxonomy (labels from the top level down)."""
    sku: str
    path: List[str] = field(default_factory=list)


@dataclass
class _Branch:
    label: str
    skus: Set[str] = field(default_factory=set)
    children: Dict[str, "_Branch"] = field(default_factory=dict)


def clean_path(path: Sequence[Optional[str]]) -> List[str]:
    """Trim labels; stop at the first blank or unsluggable label."""
    cleaned: List[str] = []
    for label in path:
        text = (label or "").strip()
        if not text or not slugify(text):
            break
        cleaned.append(text)
    return cleaned


def _grow(rows: Sequence[TaxonomyRow], root_label: str) -> _Branch:
    root = _Branch(label=root_label)
    for row in rows:
        path = clean_path(row.path)
        if not path:
            continue
        root.skus.add(row.sku)
        branch = root
        for label in path:
            # dicts keep insertion order: first-seen sibling order
            branch = branch.children.setdefault(label, _Branch(label=label))
            branch.skus.add(row.sku)
    return root


def _freeze(branch: _Branch, slug: str, segment: str, labels: List[str]) -> NavNode:
    children = []
    for child in branch.children.values():
        child_segment = slugify(child.label)
        child_labels = labels + [child.label]
        child_slug = f"{slug}/{child_segment}" if labels else child_segment
        children.append(_freeze(child, child_slug, child_segment, child_labels))

    return NavNode(
        label=branch.label,
        slug=slug,
        segment=segment,
        category_id=CATEGORY_ID_SEPARATOR.join(labels) if labels else None,
        sku_count=len(branch.skus),
        children=children,
    )


def build_tree(rows: Sequence[TaxonomyRow], root_label: str, root_key: str) -> NavNode:
    """Build the tree under a synthetic root keyed by root_key."""
    root_slug = slugify(root_key)
    return _freeze(_grow(rows, root_label), root_slug, root_slug, [])


def index_tree(root: NavNode) -> SlugMap:
    """
    Single traversal recording every node under its slug.

    Raises:
        SlugCollision: if a slug is produced twice
    """
    slug_map: SlugMap = {}
    for node in root.walk():
        existing = slug_map.get(node.slug)
        if existing is not None:
            raise SlugCollision(
                node.slug,
                existing.category_id or existing.label,
                node.category_id or node.label,
            )
        slug_map[node.slug] = node
    return slug_map


def build_navigation(
    rows: Sequence[TaxonomyRow],
    root_label: str,
    root_key: str,
    subtree_slug: Optional[str] = None,
):
    """
    Build (tree, slug_map).

    With subtree_slug, the top-level node with that slug becomes the root
    (slugs stay catalog-absolute). A missing subtree yields an empty root.
    """
    tree = build_tree(rows, root_label, root_key)
    slug_map = index_tree(tree)
    if subtree_slug is None:
        return tree, slug_map

    subtree = next((c for c in tree.children if c.slug == subtree_slug), None)
    if subtree is None:
        logger.warning(f"[nav] no top-level category with slug '{subtree_slug}'")
        subtree = NavNode(label=root_label, slug=subtree_slug, segment=subtree_slug)
    return subtree, index_tree(subtree)
