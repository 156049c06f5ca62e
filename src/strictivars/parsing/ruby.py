"""Ruby parse tree provider backed by tree-sitter.

tree-sitter reports byte offsets into the UTF-8 encoding of the source, while
annotations are character offsets into the original string. `OffsetMap`
converts between the two once per parse.
"""

from dataclasses import dataclass

import tree_sitter_ruby
from tree_sitter import Language, Node, Parser, Tree

RUBY_LANGUAGE = Language(tree_sitter_ruby.language())

_ENCODING = "utf-8"
_ERRORS = "surrogatepass"


class OffsetMap:
    """Maps UTF-8 byte offsets of a source string to character offsets."""

    def __init__(self, text: str, encoded: bytes):
        self._length = len(text)
        if len(encoded) == len(text):
            # ASCII only: offsets coincide
            self._table: list[int] | None = None
            return
        table = []
        for index, char in enumerate(text):
            table.extend([index] * len(char.encode(_ENCODING, _ERRORS)))
        table.append(len(text))
        self._table = table

    def char_offset(self, byte_offset: int) -> int:
        if self._table is None:
            return min(byte_offset, self._length)
        return self._table[min(byte_offset, len(self._table) - 1)]


@dataclass(frozen=True)
class ParsedSource:
    """A parsed unit of Ruby source."""

    text: str
    tree: Tree
    offsets: OffsetMap

    @property
    def root(self) -> Node:
        return self.tree.root_node

    @property
    def has_errors(self) -> bool:
        return has_error_nodes(self.root)

    def start(self, node: Node) -> int:
        return self.offsets.char_offset(node.start_byte)

    def end(self, node: Node) -> int:
        return self.offsets.char_offset(node.end_byte)

    def span(self, node: Node) -> tuple[int, int]:
        return self.start(node), self.end(node)

    def node_text(self, node: Node) -> str:
        start, end = self.span(node)
        return self.text[start:end]


def has_error_nodes(node: Node) -> bool:
    """Check if a tree-sitter parse tree contains ERROR or MISSING nodes."""
    stack = [node]
    while stack:
        node = stack.pop()
        if node.type == "ERROR" or node.is_missing:
            return True
        stack.extend(node.children)
    return False


def parse_ruby(text: str) -> ParsedSource:
    """Parse Ruby source. Never raises on malformed input; tree-sitter recovers a best-effort tree."""
    encoded = text.encode(_ENCODING, _ERRORS)
    parser = Parser(RUBY_LANGUAGE)
    tree = parser.parse(encoded)
    return ParsedSource(text=text, tree=tree, offsets=OffsetMap(text, encoded))
