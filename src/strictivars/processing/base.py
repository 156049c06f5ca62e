"""Tree walker that rewrites dynamic-execution calls.

`BaseProcessor` only wraps the arguments of `eval`-style calls so the runtime
can inspect the code string and its context before the real call runs. The
field guards live in `strictivars.processing.processor.Processor`.
"""

import logging
from collections.abc import Iterator
from typing import ClassVar

from pydantic import BaseModel, ConfigDict
from tree_sitter import Node

from strictivars.parsing import ParsedSource, parse_ruby
from strictivars.processing.annotations import Annotation, AnnotationList, apply_annotations
from strictivars.processing.scope import ScopeContext

logger = logging.getLogger("strictivars.processor")

DEFAULT_EVAL_METHODS = frozenset({"eval", "class_eval", "module_eval", "instance_eval"})

# Argument list children that are not positional/keyword arguments
_NON_ARGUMENT_TYPES = frozenset({"block_argument", "heredoc_body", "comment"})

# Marks an exhausted handler while walking
_DONE = object()


class ProcessorConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    runtime_namespace: str = "::StrictIvars"
    """Ruby constant path hosting the runtime helpers and the error class."""
    error_class: str = "NameError"
    """Name of the error raised for unset instance variables, inside `runtime_namespace`."""
    eval_methods: frozenset[str] = DEFAULT_EVAL_METHODS
    """Method names whose arguments are routed through the eval wrapper."""


class BaseProcessor:
    """Walks a Ruby syntax tree and collects annotations.

    Dispatch goes through `NODE_HANDLERS`, a closed table from node type to
    handler method name. Node types without an entry get `visit_children`.
    Subclasses extend the table explicitly.
    """

    NODE_HANDLERS: ClassVar[dict[str, str]] = {
        "call": "visit_call",
    }

    def __init__(self, *, config_class: type = ProcessorConfig, **kwargs):
        self.config: ProcessorConfig = config_class(**kwargs)
        self.annotations = AnnotationList()
        self.scope = ScopeContext()
        self._source: ParsedSource | None = None
        self._receiver_count = 0

    @classmethod
    def call(cls, source: str, **kwargs) -> str:
        """Transform `source` with a fresh processor."""
        return cls(**kwargs).process(source)

    def process(self, source: str) -> str:
        parsed = parse_ruby(source)
        if parsed.has_errors:
            logger.warning("Source contains syntax errors; annotating the recovered tree")
        annotations = self.annotate(parsed)
        logger.debug(f"{type(self).__name__} collected {len(annotations)} annotations")
        return apply_annotations(source, annotations)

    def annotate(self, parsed: ParsedSource) -> AnnotationList:
        """Walk `parsed` and return the annotations for it. Resets all per-source state."""
        self._source = parsed
        self.annotations = AnnotationList()
        self.scope = ScopeContext()
        self._receiver_count = 0
        self.visit(parsed.root)
        return self.annotations

    @property
    def source(self) -> ParsedSource:
        if self._source is None:
            raise RuntimeError("No source is being processed")
        return self._source

    def visit(self, node: Node | None) -> None:
        """Walk `node` and its descendants without recursing in Python.

        Handlers are generators that yield the child nodes they want visited,
        in order. Work done before a `yield` runs before that child is
        visited and work done after it runs once the child's whole subtree is
        done, so a `with` block around a `yield` brackets the child.
        """
        if node is None:
            return
        stack: list[Iterator[Node | None]] = [self._dispatch(node)]
        try:
            while stack:
                child = next(stack[-1], _DONE)
                if child is _DONE:
                    stack.pop()
                elif child is not None:
                    stack.append(self._dispatch(child))
        finally:
            # Unwind innermost first so open scopes exit in order
            while stack:
                stack.pop().close()

    def _dispatch(self, node: Node) -> Iterator[Node | None]:
        handler = self.NODE_HANDLERS.get(node.type, "visit_children")
        return getattr(self, handler)(node)

    def visit_children(self, node: Node) -> Iterator[Node]:
        yield from node.children

    def push(self, offset: int, text: str) -> None:
        self.annotations.push(Annotation(offset, text))

    # -- dynamic execution -------------------------------------------------

    @property
    def runtime(self) -> str:
        return self.config.runtime_namespace

    def visit_call(self, node: Node) -> Iterator[Node]:
        """Wrap the arguments of eval-style calls in the runtime's argument processor.

        `foo.instance_eval(code, file, line)` becomes
        `(tmp = foo).instance_eval(*(NS.__process_eval_args__(tmp, :instance_eval, code, file, line)))`.
        Openings are pushed before the children are visited and closings
        after, so guards added inside the receiver or the arguments nest
        within the wrapper where offsets coincide.
        """
        method = node.child_by_field_name("method")
        arguments = self._eval_arguments(node, method)
        if arguments is None:
            yield from node.children
            return

        name = self.source.node_text(method)
        args_start = self.source.start(arguments[0])
        args_end = self.source.end(arguments[-1])
        if any(argument.type == "forward_argument" for argument in arguments):
            closing = f")), &({self.runtime}.__eval_block_from_forwarding__(...))"
        else:
            closing = "))"

        receiver = node.child_by_field_name("receiver")
        if receiver is not None:
            receiver_local = self._next_receiver_local()
            self.push(self.source.start(receiver), f"({receiver_local} = ")
            self.push(args_start, f"*({self.runtime}.__process_eval_args__({receiver_local}, :{name}, ")
            yield from node.children
            self.push(self.source.end(receiver), ")")
        else:
            self.push(args_start, f"*({self.runtime}.__process_eval_args__(self, :{name}, ")
            yield from node.children
        self.push(args_end, closing)

    def _eval_arguments(self, node: Node, method: Node | None) -> list[Node] | None:
        """Return the argument nodes of an eval-style call, or None when the call is not rewritten."""
        if method is None or self.source.node_text(method) not in self.config.eval_methods:
            return None
        argument_list = node.child_by_field_name("arguments")
        if argument_list is None:
            return None
        arguments = [child for child in argument_list.named_children if child.type not in _NON_ARGUMENT_TYPES]
        return arguments or None

    def _next_receiver_local(self) -> str:
        name = f"__eval_receiver_{self._receiver_count}__"
        self._receiver_count += 1
        return name
