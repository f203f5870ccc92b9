from collections.abc import Iterator

from docast.models import Node, Parent

UNWRAP_PARENTS = frozenset({"blockTag", "listItem"})


def walk(node: Node) -> Iterator[tuple[Node, Parent | None]]:
    """Yield every node under ``node`` (inclusive) with its parent, depth first."""
    stack: list[tuple[Node, Parent | None]] = [(node, None)]
    while stack:
        current, parent = stack.pop()
        yield current, parent
        if isinstance(current, Parent):
            stack.extend((child, current) for child in reversed(current.children))


def unwrap_paragraphs(tree: Node) -> None:
    """Replace paragraphs directly inside block tags and list items with their children."""
    for node, _ in walk(tree):
        if isinstance(node, Parent) and node.type in UNWRAP_PARENTS:
            children: list[Node] = []
            for child in node.children:
                if child.type == "paragraph" and isinstance(child, Parent):
                    children.extend(child.children)
                else:
                    children.append(child)
            node.children = children
