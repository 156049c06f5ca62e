"""Tree walker that guards the first read of each instance variable per scope."""

from collections.abc import Iterator
from typing import ClassVar

from tree_sitter import Node

from strictivars.processing.base import BaseProcessor

SCOPE_TYPES = ("method", "singleton_method", "class", "module", "singleton_class", "block", "do_block", "lambda")

# node type -> (field evaluated unconditionally, fields holding mutually exclusive branches)
CONDITIONAL_FIELDS: dict[str, tuple[str, tuple[str, ...]]] = {
    "if": ("condition", ("consequence", "alternative")),
    "unless": ("condition", ("consequence", "alternative")),
    "elsif": ("condition", ("consequence", "alternative")),
    "conditional": ("condition", ("consequence", "alternative")),
    "if_modifier": ("condition", ("body",)),
    "unless_modifier": ("condition", ("body",)),
}

CASE_ARM_TYPES = frozenset({"when", "in_clause", "else"})

# Containers whose direct instance variables are written, not read
TARGET_LIST_TYPES = frozenset(
    {"left_assignment_list", "destructured_left_assignment", "rest_assignment", "exception_variable"}
)


class Processor(BaseProcessor):
    """Adds a runtime "was it set" guard around the first read of each instance variable.

    Knowledge of which variables were already checked is kept per scope.
    Method, class, module and block bodies each start from nothing. The arms
    of a conditional each see what was known before the conditional, and
    what they learn is dropped once the conditional ends.
    """

    NODE_HANDLERS: ClassVar[dict[str, str]] = {
        **BaseProcessor.NODE_HANDLERS,
        **{node_type: "visit_scope" for node_type in SCOPE_TYPES},
        **{node_type: "visit_conditional" for node_type in CONDITIONAL_FIELDS},
        "case": "visit_case",
        "case_match": "visit_case",
        "unary": "visit_unary",
        "interpolation": "visit_interpolation",
        "instance_variable": "visit_instance_variable",
        "assignment": "visit_assignment",
        "operator_assignment": "visit_assignment",
        "for": "visit_assignment",
        **{node_type: "visit_target_list" for node_type in TARGET_LIST_TYPES},
    }

    def visit_scope(self, node: Node) -> Iterator[Node]:
        with self.scope.fresh_scope():
            yield from node.children

    def visit_conditional(self, node: Node) -> Iterator[Node | None]:
        condition_field, branch_fields = CONDITIONAL_FIELDS[node.type]
        # The condition always runs, so what it validates holds for every branch and after
        yield node.child_by_field_name(condition_field)
        for field in branch_fields:
            branch = node.child_by_field_name(field)
            if branch is None:
                continue
            with self.scope.branch():
                yield branch

    def visit_case(self, node: Node) -> Iterator[Node | None]:
        value = node.child_by_field_name("value")
        yield value
        for child in node.children:
            if value is not None and child == value:
                continue
            if child.type in CASE_ARM_TYPES:
                with self.scope.branch():
                    yield child
            else:
                yield child

    def visit_unary(self, node: Node) -> Iterator[Node]:
        """`defined?(@x)` checks existence itself, so its operand is left alone."""
        if node.child_count and node.children[0].type == "defined?":
            operand = node.child_by_field_name("operand")
            if operand is None and node.named_child_count:
                operand = node.named_children[-1]
            operand = _unwrap_parentheses(operand)
            if operand is not None and operand.type == "instance_variable":
                return
        yield from node.children

    def visit_interpolation(self, node: Node) -> Iterator[Node]:
        """Give `"#@x"` explicit braces so the guard expression can sit inside the string."""
        variable = _shorthand_variable(node)
        if variable is None or self.scope.is_validated(self.source.node_text(variable)):
            yield from node.children
            return
        start, end = self.source.span(variable)
        self.push(start, "{")
        yield from node.children
        self.push(end, "}")

    def visit_instance_variable(self, node: Node) -> Iterator[Node]:
        name = self.source.node_text(node)
        if self.scope.is_validated(name):
            return
        self.scope.mark_validated(name)
        start, end = self.source.span(node)
        error = f"{self.runtime}::{self.config.error_class}"
        self.push(start, f"(defined?({name}) ? ")
        self.push(end, f" : (::Kernel.raise({error}.new(self, :{name}))))")
        yield from ()

    def visit_assignment(self, node: Node) -> Iterator[Node]:
        target = node.child_by_field_name("left")
        if target is None:
            target = node.child_by_field_name("pattern")
        for child in node.children:
            if target is not None and child == target:
                yield from self._target_children(child)
            else:
                yield child

    def visit_target_list(self, node: Node) -> Iterator[Node]:
        for child in node.children:
            yield from self._target_children(child)

    def _target_children(self, node: Node) -> Iterator[Node]:
        """Writing `@x` is neither guarded nor counted as validating it."""
        if node.type == "instance_variable":
            return
        if node.type in TARGET_LIST_TYPES:
            yield from self.visit_target_list(node)
        else:
            yield node


def _unwrap_parentheses(node: Node | None) -> Node | None:
    while node is not None and node.type == "parenthesized_statements" and node.named_child_count == 1:
        node = node.named_children[0]
    return node


def _shorthand_variable(node: Node) -> Node | None:
    """Return the instance variable of a `#@x` interpolation, or None for `#{...}` and other variables."""
    if node.children and node.children[0].type == "#{":
        return None
    named = node.named_children
    if len(named) == 1 and named[0].type == "instance_variable":
        return named[0]
    return None
