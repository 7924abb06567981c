"""Threaded reply trees built from a post's flat comment list.

The tree is never stored. It is rebuilt in full from the comments partition
on every read and after every mutation.
"""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from uuid import UUID

from .models import Comment


@dataclass
class CommentNode:
    """A comment and its direct replies, oldest first."""

    comment: Comment
    replies: list["CommentNode"] = field(default_factory=list)


def build_comment_tree(comments: Iterable[Comment]) -> list[CommentNode]:
    """Thread a flat, oldest-first list of comments by parent reference.

    Every input comment becomes exactly one node. A comment whose parent is
    not in the list is kept at the top level instead of being dropped, and so
    is a comment whose attachment would close a reference cycle. Input order
    is preserved among siblings.
    """
    nodes = [CommentNode(comment) for comment in comments]

    lookup: dict[UUID, CommentNode] = {}
    for node in nodes:
        lookup.setdefault(node.comment.comment_id, node)

    # child id -> parent id, for every attachment made so far
    attached_to: dict[UUID, UUID] = {}
    roots: list[CommentNode] = []

    for node in nodes:
        parent_id = node.comment.parent_comment_id
        parent = lookup.get(parent_id) if parent_id is not None else None
        if parent is None or parent is node or _closes_cycle(
            attached_to, node.comment.comment_id, parent_id
        ):
            roots.append(node)
            continue
        parent.replies.append(node)
        attached_to[node.comment.comment_id] = parent_id

    return roots


def _closes_cycle(attached_to: dict[UUID, UUID], child_id: UUID, parent_id: UUID) -> bool:
    ancestor: UUID | None = parent_id
    while ancestor is not None:
        if ancestor == child_id:
            return True
        ancestor = attached_to.get(ancestor)
    return False


def iter_nodes(nodes: Iterable[CommentNode]) -> Iterator[CommentNode]:
    """Depth-first, pre-order walk over a forest."""
    for node, _depth in walk_with_depth(nodes):
        yield node


def walk_with_depth(nodes: Iterable[CommentNode]) -> Iterator[tuple[CommentNode, int]]:
    """Pre-order walk yielding each node with its depth (0 for top level).

    This is the display order of a thread: a reply comes after its parent
    and after the subtrees of its older siblings.
    """
    stack = [(node, 0) for node in reversed(list(nodes))]
    while stack:
        node, depth = stack.pop()
        yield node, depth
        stack.extend((reply, depth + 1) for reply in reversed(node.replies))


def count_nodes(nodes: Iterable[CommentNode]) -> int:
    """Count all comments in a forest, replies included."""
    return sum(1 for _ in iter_nodes(nodes))


def find_node(nodes: Iterable[CommentNode], comment_id: UUID) -> CommentNode | None:
    """Find the node of a comment anywhere in the forest."""
    for node in iter_nodes(nodes):
        if node.comment.comment_id == comment_id:
            return node
    return None


def collect_descendant_ids(nodes: Iterable[CommentNode], comment_id: UUID) -> list[UUID]:
    """IDs of a comment and every reply beneath it (empty if not found)."""
    node = find_node(nodes, comment_id)
    if node is None:
        return []
    return [descendant.comment.comment_id for descendant in iter_nodes([node])]
