"""strictivars: guard Ruby instance variable reads and eval calls by rewriting source.

The processors parse Ruby with tree-sitter, collect (offset, text) annotations
while walking the tree, and splice them back into the original text.
"""

__version__ = "0.1.0"

from strictivars.processing import ProcessedSource, SourcePolicy, get_processor_class, process_source  # noqa: E402
from strictivars.processing.base import BaseProcessor, ProcessorConfig  # noqa: E402
from strictivars.processing.processor import Processor  # noqa: E402

__all__ = [
    "BaseProcessor",
    "ProcessedSource",
    "Processor",
    "ProcessorConfig",
    "SourcePolicy",
    "get_processor_class",
    "process_source",
]
