"""
Generic tree search over a parsed BeautifulSoup document.

Two traversals (breadth-first and depth-first) return the first node that
satisfies a criterion. A second criterion, ``recurse_if``, decides whether
a non-matching node's children are worth visiting at all; when it says no,
the whole subtree is pruned.

Criteria are plain callables ``node -> bool`` and compose with
``all_of`` / ``any_of`` / ``negate``:

    container = breadth_first_search(
        soup,
        all_of(is_tag("div"), has_attribute_with_value("id", "siteTable")),
        negate(is_tag("head")),
    )
"""

import re
from collections import deque
from typing import Callable, Optional, Union

from bs4 import BeautifulSoup
from bs4.element import PageElement, Tag

from .exceptions import SearchFailed

Criterion = Callable[[PageElement], bool]


def _children(node: PageElement) -> list:
    # Text, comments and other leaves have no children
    if isinstance(node, Tag):
        return list(node.contents)
    return []


def _is_document(node: PageElement) -> bool:
    return isinstance(node, BeautifulSoup)


def _should_expand(node: PageElement, recurse_if: Criterion) -> bool:
    # The document object never matches element criteria, so it is always
    # expanded no matter what recurse_if says.
    if _is_document(node):
        return True
    return recurse_if(node)


def breadth_first_search(
    root: PageElement,
    criteria: Criterion,
    recurse_if: Criterion
) -> PageElement:
    """
    Return the first node, in level order, that satisfies ``criteria``.

    Raises:
        SearchFailed: if the reachable tree is exhausted without a match.
    """
    nodes = deque([root])

    while nodes:
        node = nodes.popleft()

        if criteria(node):
            return node

        if _should_expand(node, recurse_if):
            nodes.extend(_children(node))

    raise SearchFailed()


def depth_first_search(
    root: PageElement,
    criteria: Criterion,
    recurse_if: Criterion
) -> PageElement:
    """
    Return the first node, in pre-order, that satisfies ``criteria``.

    Children are pushed in reverse so the first child is popped before
    its later siblings.

    Raises:
        SearchFailed: if the reachable tree is exhausted without a match.
    """
    nodes = [root]

    while nodes:
        node = nodes.pop()

        if criteria(node):
            return node

        if _should_expand(node, recurse_if):
            nodes.extend(reversed(_children(node)))

    raise SearchFailed()


def get_attribute(node: PageElement, key: str) -> Optional[str]:
    """
    Return the value of attribute ``key`` as a string, or None.

    bs4 stores at most one value per key; html5lib keeps the first of any
    repeated attributes, so that is the one returned. Multi-valued
    attributes (``class`` when parsed with bs4 defaults) are joined with
    single spaces to give back the original attribute text.
    """
    if not isinstance(node, Tag) or _is_document(node):
        return None
    value = node.attrs.get(key)
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        return " ".join(value)
    return value


# ------------------------------------------------------------------------- #
# Search criteria
# ------------------------------------------------------------------------- #

def all_of(*criteria: Criterion) -> Criterion:
    """True only if every criterion holds. Stops at the first false one."""
    def check(node: PageElement) -> bool:
        for c in criteria:
            if not c(node):
                return False
        return True
    return check


def any_of(*criteria: Criterion) -> Criterion:
    """True if any criterion holds. Stops at the first true one."""
    def check(node: PageElement) -> bool:
        for c in criteria:
            if c(node):
                return True
        return False
    return check


def negate(criterion: Criterion) -> Criterion:
    def check(node: PageElement) -> bool:
        return not criterion(node)
    return check


def is_tag(name: str) -> Criterion:
    """Element node with exactly this tag name."""
    name = name.lower()

    def check(node: PageElement) -> bool:
        return isinstance(node, Tag) and not _is_document(node) and node.name == name
    return check


def has_attribute(key: str) -> Criterion:
    def check(node: PageElement) -> bool:
        return get_attribute(node, key) is not None
    return check


def has_attribute_with_value(key: str, value: str) -> Criterion:
    """Attribute present with exactly this value."""
    def check(node: PageElement) -> bool:
        return get_attribute(node, key) == value
    return check


def has_attribute_matching(key: str, pattern: Union[str, re.Pattern]) -> Criterion:
    """
    Attribute present and ``pattern`` found anywhere in its value.

    The match is unanchored (``re.search``), so "title.*" also matches
    "may-blank title outbound".
    """
    regex = re.compile(pattern) if isinstance(pattern, str) else pattern

    def check(node: PageElement) -> bool:
        value = get_attribute(node, key)
        return value is not None and regex.search(value) is not None
    return check


def recurse_always(_node: PageElement) -> bool:
    return True


def recurse_never(_node: PageElement) -> bool:
    return False
