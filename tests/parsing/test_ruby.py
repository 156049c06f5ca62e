"""Unit tests for the tree-sitter based Ruby parse tree provider."""

from strictivars.parsing import OffsetMap, has_error_nodes, parse_ruby


def _find(node, node_type):
    if node.type == node_type:
        return node
    for child in node.children:
        found = _find(child, node_type)
        if found is not None:
            return found
    return None


def test_parse_valid_source():
    parsed = parse_ruby("def foo\n  @foo\nend\n")
    assert parsed.root.type == "program"
    assert not parsed.has_errors
    ivar = _find(parsed.root, "instance_variable")
    assert parsed.node_text(ivar) == "@foo"
    assert parsed.span(ivar) == (10, 14)


def test_parse_malformed_source_does_not_raise():
    parsed = parse_ruby("def foo(\n  @a\n")
    assert parsed.has_errors
    assert has_error_nodes(parsed.root)


def test_character_offsets_with_multibyte_text():
    source = 'x = "äöü"; @a\n'
    parsed = parse_ruby(source)
    ivar = _find(parsed.root, "instance_variable")
    start, end = parsed.span(ivar)
    assert source[start:end] == "@a"
    assert parsed.node_text(ivar) == "@a"


def test_offset_map_ascii_is_identity():
    text = "abc"
    offsets = OffsetMap(text, text.encode("utf-8"))
    assert [offsets.char_offset(i) for i in range(4)] == [0, 1, 2, 3]


def test_offset_map_multibyte():
    text = "aé😀b"
    offsets = OffsetMap(text, text.encode("utf-8"))
    # a=1 byte, é=2 bytes, 😀=4 bytes
    assert offsets.char_offset(0) == 0
    assert offsets.char_offset(1) == 1
    assert offsets.char_offset(3) == 2
    assert offsets.char_offset(7) == 3
    assert offsets.char_offset(8) == 4


def test_error_check_on_deep_tree():
    parsed = parse_ruby("x = " + " + ".join(["1"] * 1000) + "\n")
    assert not parsed.has_errors
    assert parse_ruby("x = " + " + ".join(["1"] * 1000) + " +\n").has_errors
