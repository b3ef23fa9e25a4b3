"""Read-only syntax tree facade shared by every rule.

Nodes live in an arena (``SyntaxTree.nodes``) and refer to each other by
index: a node stores its parent's index and its children's indices, never
object references.  Producers populate the arena through ``TreeBuilder``.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple

from .source import LineIndex


class NodeKind(str, Enum):
    """Producer-independent node vocabulary."""

    # Structural constructs tracked by the indentation rule
    BLOCK = "block"
    HASH = "hash"
    ARRAY = "array"
    CLASS_DEF = "class-def"
    MODULE_DEF = "module-def"
    SINGLETON_CLASS = "singleton-class"
    METHOD_DEF = "method-def"
    SINGLETON_METHOD_DEF = "singleton-method-def"
    CONDITIONAL_IF = "conditional-if"
    CONDITIONAL_CASE = "conditional-case"
    LOOP_WHILE = "loop-while"
    LOOP_UNTIL = "loop-until"
    LOOP_FOR = "loop-for"
    EXCEPTION_BLOCK = "exception-block"

    # Expressions and clauses
    CALL = "call"
    LAMBDA = "lambda"
    LITERAL = "literal"
    REFERENCE = "reference"
    CONSTANT = "constant"
    ARGUMENT_LIST = "argument-list"
    PARAMETER_LIST = "parameter-list"
    OPTIONAL_PARAMETER = "optional-parameter"
    RESCUE_CLAUSE = "rescue-clause"
    RESCUE_BODY = "rescue-body"
    ENSURE_CLAUSE = "ensure-clause"
    STATEMENTS = "statements"
    HEREDOC_BODY = "heredoc-body"
    OTHER = "other"


STRUCTURAL_KINDS = frozenset({
    NodeKind.BLOCK,
    NodeKind.HASH,
    NodeKind.ARRAY,
    NodeKind.CLASS_DEF,
    NodeKind.MODULE_DEF,
    NodeKind.SINGLETON_CLASS,
    NodeKind.METHOD_DEF,
    NodeKind.SINGLETON_METHOD_DEF,
    NodeKind.CONDITIONAL_IF,
    NodeKind.CONDITIONAL_CASE,
    NodeKind.LOOP_WHILE,
    NodeKind.LOOP_UNTIL,
    NodeKind.LOOP_FOR,
    NodeKind.EXCEPTION_BLOCK,
})


@dataclass(frozen=True)
class Span:
    start_line: int
    start_column: int
    start_offset: int
    end_line: int
    end_column: int
    end_offset: int


@dataclass
class SyntaxNode:
    index: int
    kind: NodeKind
    span: Optional[Span]
    type: str = ""
    field: Optional[str] = None
    name: Optional[str] = None
    opening: Optional[Span] = None
    opening_text: Optional[str] = None
    closing: Optional[Span] = None
    parent_index: Optional[int] = None
    child_indices: List[int] = dataclasses.field(default_factory=list)

    @property
    def braces(self) -> bool:
        """True when the node is delimited by ``{`` ... ``}``."""
        return self.opening_text == "{"

    @property
    def first_line(self) -> Optional[int]:
        return self.span.start_line if self.span else None

    @property
    def last_line(self) -> Optional[int]:
        """Line of the closing delimiter, or of the span end without one."""
        if self.closing is not None:
            return self.closing.end_line
        return self.span.end_line if self.span else None


class SyntaxTree:
    """Arena of ``SyntaxNode`` rooted at ``nodes[0]``."""

    def __init__(self, nodes: List[SyntaxNode], source: str = "", error_count: int = 0) -> None:
        if not nodes:
            raise ValueError("a syntax tree needs at least a root node")
        self.nodes = nodes
        self.source = source
        self.error_count = error_count

    @property
    def root(self) -> SyntaxNode:
        return self.nodes[0]

    def parent(self, node: SyntaxNode) -> Optional[SyntaxNode]:
        if node.parent_index is None:
            return None
        return self.nodes[node.parent_index]

    def children(self, node: SyntaxNode) -> List[SyntaxNode]:
        return [self.nodes[i] for i in node.child_indices]

    def child_by_field(self, node: SyntaxNode, name: str) -> Optional[SyntaxNode]:
        for i in node.child_indices:
            if self.nodes[i].field == name:
                return self.nodes[i]
        return None

    def ancestors(self, node: SyntaxNode) -> Iterator[SyntaxNode]:
        """Yield the ancestors of *node*, nearest first."""
        current = self.parent(node)
        while current is not None:
            yield current
            current = self.parent(current)

    def walk(self, start: Optional[SyntaxNode] = None) -> Iterator[SyntaxNode]:
        """Pre-order traversal, children visited in source order."""
        stack = [start or self.root]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(self.nodes[i] for i in reversed(node.child_indices))

    def text(self, node: SyntaxNode) -> str:
        if node.span is None:
            return ""
        return self.source[node.span.start_offset:node.span.end_offset]


class TreeBuilder:
    """Incrementally assembles a ``SyntaxTree`` from offset ranges.

    The first node added becomes the root.  Children must be added after
    their parent and in source order.
    """

    def __init__(self, source: str, lines: Optional[LineIndex] = None) -> None:
        self.source = source
        self.lines = lines or LineIndex(source)
        self.nodes: List[SyntaxNode] = []
        self.error_count = 0

    def span(self, start: int, end: int) -> Span:
        start_line, start_column = self.lines.position(start)
        end_line, end_column = self.lines.position(end)
        return Span(start_line, start_column, start, end_line, end_column, end)

    def add(
        self,
        kind: NodeKind,
        start: Optional[int],
        end: Optional[int],
        parent: Optional[SyntaxNode] = None,
        type: str = "",
        field: Optional[str] = None,
        name: Optional[str] = None,
        opening: Optional[Tuple[int, int]] = None,
        closing: Optional[Tuple[int, int]] = None,
    ) -> SyntaxNode:
        """Append a node; pass ``start=None`` for a node without location."""
        if parent is None and self.nodes:
            raise ValueError("only the root node may be added without a parent")
        span = self.span(start, end) if start is not None and end is not None else None
        node = SyntaxNode(
            index=len(self.nodes),
            kind=kind,
            span=span,
            type=type or kind.value,
            field=field,
            name=name,
            opening=self.span(*opening) if opening else None,
            opening_text=self.source[opening[0]:opening[1]] if opening else None,
            closing=self.span(*closing) if closing else None,
            parent_index=parent.index if parent is not None else None,
        )
        self.nodes.append(node)
        if parent is not None:
            parent.child_indices.append(node.index)
        return node

    def build(self) -> SyntaxTree:
        return SyntaxTree(self.nodes, source=self.source, error_count=self.error_count)


def describe(tree: SyntaxTree, node: Optional[SyntaxNode] = None, depth: int = 0) -> str:
    """S-expression dump of a (sub)tree, for debugging and test failure output."""
    node = node or tree.root
    label: Dict[str, str] = {"kind": node.kind.value}
    if node.field:
        label["field"] = node.field
    if node.name:
        label["name"] = node.name
    head = " ".join(f"{k}={v}" for k, v in label.items())
    inner = "".join("\n" + describe(tree, child, depth + 1) for child in tree.children(node))
    return f"{'  ' * depth}({head}{inner})"
