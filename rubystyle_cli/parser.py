"""Ruby source parser built on Tree-sitter.

Tree-sitter is error tolerant: a file with syntax errors still yields a
complete tree (with ``ERROR`` nodes), so the rules can analyze broken files
instead of giving up on them.  The concrete tree is converted into the
producer-independent ``SyntaxTree`` arena the rules work on:

- named nodes become ``SyntaxNode`` entries with a ``NodeKind``,
- anonymous tokens (``{``, ``end``, ``(`` ...) only populate the
  ``opening`` / ``closing`` spans of their parent,
- UTF-8 byte offsets are converted to ``str`` offsets once, here.
"""

from __future__ import annotations

import importlib
import logging
from typing import Any, Dict, List, Optional, Tuple

from .source import LineIndex
from .syntax import NodeKind, SyntaxNode, SyntaxTree, TreeBuilder

logger = logging.getLogger(__name__)

GRAMMAR_MODULE = "tree_sitter_ruby"

# Source text is decoded with surrogateescape so undecodable bytes survive a
# read/fix/write round trip; encoding back the same way restores them.
SOURCE_ENCODING = "utf-8"
SOURCE_ERRORS = "surrogateescape"

# ---------------------------------------------------------------------------
# Grammar node type -> NodeKind
# ---------------------------------------------------------------------------
KIND_MAP: Dict[str, NodeKind] = {
    # statement sequences
    "program": NodeKind.STATEMENTS,
    "body_statement": NodeKind.STATEMENTS,
    "then": NodeKind.STATEMENTS,
    "else": NodeKind.STATEMENTS,
    "do": NodeKind.STATEMENTS,
    # blocks and literals with delimiters
    "block": NodeKind.BLOCK,
    "do_block": NodeKind.BLOCK,
    "hash": NodeKind.HASH,
    "array": NodeKind.ARRAY,
    "string_array": NodeKind.ARRAY,
    "symbol_array": NodeKind.ARRAY,
    # definitions
    "class": NodeKind.CLASS_DEF,
    "module": NodeKind.MODULE_DEF,
    "singleton_class": NodeKind.SINGLETON_CLASS,
    "method": NodeKind.METHOD_DEF,
    "singleton_method": NodeKind.SINGLETON_METHOD_DEF,
    # control flow
    "if": NodeKind.CONDITIONAL_IF,
    "unless": NodeKind.CONDITIONAL_IF,
    "if_modifier": NodeKind.CONDITIONAL_IF,
    "unless_modifier": NodeKind.CONDITIONAL_IF,
    "conditional": NodeKind.CONDITIONAL_IF,
    "case": NodeKind.CONDITIONAL_CASE,
    "case_match": NodeKind.CONDITIONAL_CASE,
    "while": NodeKind.LOOP_WHILE,
    "while_modifier": NodeKind.LOOP_WHILE,
    "until": NodeKind.LOOP_UNTIL,
    "until_modifier": NodeKind.LOOP_UNTIL,
    "for": NodeKind.LOOP_FOR,
    "begin": NodeKind.EXCEPTION_BLOCK,
    # exception handling
    "rescue": NodeKind.RESCUE_BODY,
    "rescue_modifier": NodeKind.RESCUE_CLAUSE,
    "ensure": NodeKind.ENSURE_CLAUSE,
    # calls
    "call": NodeKind.CALL,
    "lambda": NodeKind.LAMBDA,
    "argument_list": NodeKind.ARGUMENT_LIST,
    # names
    "global_variable": NodeKind.REFERENCE,
    "identifier": NodeKind.REFERENCE,
    "instance_variable": NodeKind.REFERENCE,
    "class_variable": NodeKind.REFERENCE,
    "constant": NodeKind.CONSTANT,
    "scope_resolution": NodeKind.CONSTANT,
    # parameters
    "method_parameters": NodeKind.PARAMETER_LIST,
    "lambda_parameters": NodeKind.PARAMETER_LIST,
    "block_parameters": NodeKind.PARAMETER_LIST,
    "parameters": NodeKind.PARAMETER_LIST,
    "optional_parameter": NodeKind.OPTIONAL_PARAMETER,
    "keyword_parameter": NodeKind.OPTIONAL_PARAMETER,
    "heredoc_body": NodeKind.HEREDOC_BODY,
}

LITERAL_TYPES = frozenset({
    "string", "chained_string", "subshell", "character", "integer", "float",
    "complex", "rational", "simple_symbol", "delimited_symbol", "hash_key_symbol",
    "regex", "true", "false", "nil", "self",
})

# `begin ... end while x` is a post-condition loop around a begin block; the
# begin block alone carries the nesting.
POST_CONDITION_LOOPS = frozenset({"while_modifier", "until_modifier"})

NAMED_KINDS = frozenset({NodeKind.REFERENCE, NodeKind.CONSTANT})


class ParserUnavailableError(RuntimeError):
    """Raised when tree-sitter or the Ruby grammar cannot be loaded."""


class ByteOffsets:
    """Translate UTF-8 byte offsets into ``str`` offsets."""

    def __init__(self, source: str) -> None:
        self._table: Optional[List[int]] = None
        if not source.isascii():
            table: List[int] = []
            for index, char in enumerate(source):
                table.extend([index] * len(char.encode(SOURCE_ENCODING, SOURCE_ERRORS)))
            table.append(len(source))
            self._table = table

    def __call__(self, byte_offset: int) -> int:
        if self._table is None:
            return byte_offset
        return self._table[byte_offset]


# ===================================================================
# Tree-sitter Ruby Parser
# ===================================================================

class RubyParser:
    """Parse Ruby source into a ``SyntaxTree``.

    The grammar is loaded once per instance; parsing is synchronous and
    the parser can be reused for any number of sources.
    """

    def __init__(self) -> None:
        self._parser = self._load_parser()

    @staticmethod
    def _load_parser() -> Any:
        try:
            from tree_sitter import Language, Parser as TSParser  # type: ignore[import-untyped]
        except ImportError as exc:
            raise ParserUnavailableError(
                "tree-sitter is not installed. Install with: pip install tree-sitter"
            ) from exc

        try:
            grammar = importlib.import_module(GRAMMAR_MODULE)
        except ImportError as exc:
            raise ParserUnavailableError(
                f"Grammar package '{GRAMMAR_MODULE}' is not installed. "
                f"Install with: pip install {GRAMMAR_MODULE.replace('_', '-')}"
            ) from exc

        try:
            # tree-sitter >=0.22 per-language packages expose a
            # language() function that returns the Language capsule.
            parser = TSParser(Language(grammar.language()))
        except Exception as exc:
            raise ParserUnavailableError(f"Could not load tree-sitter grammar for Ruby: {exc}") from exc
        logger.debug("Loaded tree-sitter parser for ruby")
        return parser

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    def parse(self, source: str, path: str = "<source>") -> SyntaxTree:
        data = source.encode(SOURCE_ENCODING, SOURCE_ERRORS)
        ts_tree = self._parser.parse(data)
        tree = self._convert(ts_tree, source, data)
        if tree.error_count:
            logger.warning(
                "%s: %d syntax error(s); results may be incomplete", path, tree.error_count,
            )
        return tree

    def _convert(self, ts_tree: Any, source: str, data: bytes) -> SyntaxTree:
        builder = TreeBuilder(source, LineIndex(source))
        offsets = ByteOffsets(source)
        cursor = ts_tree.walk()
        # parent of the nodes at the cursor's current depth
        parents: List[Optional[SyntaxNode]] = [None]

        while True:
            ts_node = cursor.node
            if ts_node.type == "ERROR" or ts_node.is_missing:
                builder.error_count += 1

            current = parents[-1]
            if ts_node.is_named:
                current = self._add(builder, ts_node, parents[-1], cursor.field_name, data, offsets)

            if cursor.goto_first_child():
                parents.append(current)
                continue
            while not cursor.goto_next_sibling():
                if not cursor.goto_parent():
                    return builder.build()
                parents.pop()

    def _add(
        self,
        builder: TreeBuilder,
        ts_node: Any,
        parent: Optional[SyntaxNode],
        field: Optional[str],
        data: bytes,
        offsets: ByteOffsets,
    ) -> SyntaxNode:
        opening, closing = _delimiters(ts_node, offsets)
        kind = _kind_of(ts_node)
        return builder.add(
            kind,
            offsets(ts_node.start_byte),
            offsets(ts_node.end_byte),
            parent=parent,
            type=ts_node.type,
            field=field,
            name=_name_of(ts_node, kind, data),
            opening=opening,
            closing=closing,
        )


# ===================================================================
# Helpers
# ===================================================================

def _kind_of(ts_node: Any) -> NodeKind:
    node_type = ts_node.type
    if node_type in POST_CONDITION_LOOPS:
        body = ts_node.child_by_field_name("body")
        if body is not None and body.type == "begin":
            return NodeKind.OTHER
    if node_type in LITERAL_TYPES:
        return NodeKind.LITERAL
    return KIND_MAP.get(node_type, NodeKind.OTHER)


def _name_of(ts_node: Any, kind: NodeKind, data: bytes) -> Optional[str]:
    if kind is NodeKind.CALL:
        method = ts_node.child_by_field_name("method")
        target = method
    elif kind in NAMED_KINDS:
        target = ts_node
    else:
        return None
    if target is None:
        return None
    return data[target.start_byte:target.end_byte].decode(SOURCE_ENCODING, SOURCE_ERRORS)


def _delimiters(
    ts_node: Any, offsets: ByteOffsets,
) -> Tuple[Optional[Tuple[int, int]], Optional[Tuple[int, int]]]:
    """Offset ranges of the leading and trailing anonymous tokens, if any."""
    if ts_node.child_count < 2:
        return None, None
    first = ts_node.children[0]
    last = ts_node.children[-1]
    opening = closing = None
    if not first.is_named and first.end_byte > first.start_byte:
        opening = (offsets(first.start_byte), offsets(first.end_byte))
    if not last.is_named and last.end_byte > last.start_byte:
        closing = (offsets(last.start_byte), offsets(last.end_byte))
    return opening, closing
