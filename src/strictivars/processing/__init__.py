"""Processor registry and the per-file entry point."""

import importlib
import logging
from dataclasses import dataclass
from fnmatch import fnmatch
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from strictivars.parsing import parse_ruby
from strictivars.processing.annotations import Annotation, apply_annotations
from strictivars.processing.base import BaseProcessor
from strictivars.processing.processor import Processor

logger = logging.getLogger("strictivars.processing")

_PROCESSOR_MAPPING = {
    "strict": "strictivars.processing.processor.Processor",
    "eval": "strictivars.processing.base.BaseProcessor",
}


def get_processor_class(spec: str) -> type[BaseProcessor]:
    """Resolve `strict`, `eval` or a full import path to a processor class."""
    full_path = _PROCESSOR_MAPPING.get(spec, spec)
    try:
        module_name, class_name = full_path.rsplit(".", 1)
        module = importlib.import_module(module_name)
        return getattr(module, class_name)
    except (ValueError, ImportError, AttributeError):
        msg = f"Unknown processor type: {spec} (resolved to {full_path}, available: {_PROCESSOR_MAPPING})"
        raise ValueError(msg)


class SourcePolicy(BaseModel):
    model_config = ConfigDict(extra="forbid")

    include: list[str] = ["*"]
    """Glob patterns of paths that get instance variable guards."""
    exclude: list[str] = []
    """Glob patterns removed from `include`. Excluded files still get their eval calls rewritten."""

    def is_strict(self, path: str | Path | None) -> bool:
        if path is None:
            return True
        posix = Path(path).as_posix()
        if not any(fnmatch(posix, pattern) for pattern in self.include):
            return False
        return not any(fnmatch(posix, pattern) for pattern in self.exclude)


@dataclass(frozen=True)
class ProcessedSource:
    path: str | None
    """Path the source was loaded from, passed through untouched."""
    source: str
    output: str
    annotations: tuple[Annotation, ...]
    strict: bool
    parse_errors: bool


def process_source(
    source: str,
    *,
    path: str | Path | None = None,
    policy: SourcePolicy | None = None,
    **processor_kwargs,
) -> ProcessedSource:
    """Transform one unit of Ruby source.

    Files the policy treats as strict go through `Processor`; all others go
    through `BaseProcessor`, which only rewrites eval calls.
    """
    policy = policy or SourcePolicy()
    strict = policy.is_strict(path)
    processor_class = get_processor_class("strict" if strict else "eval")
    processor = processor_class(**processor_kwargs)

    parsed = parse_ruby(source)
    parse_errors = parsed.has_errors
    if parse_errors:
        logger.warning(f"{path or '<source>'}: syntax errors found, annotating the recovered tree")
    annotations = processor.annotate(parsed)
    logger.debug(f"{path or '<source>'}: {len(annotations)} annotations ({'strict' if strict else 'eval only'})")
    return ProcessedSource(
        path=None if path is None else str(path),
        source=source,
        output=apply_annotations(source, annotations),
        annotations=tuple(annotations),
        strict=strict,
        parse_errors=parse_errors,
    )


__all__ = [
    "BaseProcessor",
    "ProcessedSource",
    "Processor",
    "SourcePolicy",
    "get_processor_class",
    "process_source",
]
