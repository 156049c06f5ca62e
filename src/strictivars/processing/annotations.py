"""Insertion directives collected during traversal, and their application to the source text."""

from collections.abc import Iterable, Iterator
from operator import attrgetter
from typing import NamedTuple

from strictivars.exceptions import AnnotationOutOfRangeError


class Annotation(NamedTuple):
    offset: int
    """Character offset into the original source."""
    text: str


class AnnotationList:
    """Append-only list of annotations in discovery order."""

    def __init__(self, annotations: Iterable[Annotation] = ()):
        self._annotations: list[Annotation] = list(annotations)

    def push(self, *annotations: Annotation) -> None:
        self._annotations.extend(annotations)

    def __iter__(self) -> Iterator[Annotation]:
        return iter(self._annotations)

    def __len__(self) -> int:
        return len(self._annotations)

    def __repr__(self) -> str:
        return f"AnnotationList({self._annotations!r})"


def apply_annotations(source: str, annotations: Iterable[Annotation]) -> str:
    """Insert every annotation's text at its offset in `source`.

    All offsets refer to the untouched source. Sorting is stable, so
    annotations sharing an offset come out in the order they were pushed:
    an opening fragment pushed before a nested one ends up to its left, and
    a closing fragment pushed after a nested one ends up to its right. The
    result is the same as inserting bottom-up in descending offset order.
    """
    length = len(source)
    ordered = sorted(annotations, key=attrgetter("offset"))
    pieces = []
    cursor = 0
    for offset, text in ordered:
        if not 0 <= offset <= length:
            raise AnnotationOutOfRangeError(offset, length)
        pieces.append(source[cursor:offset])
        pieces.append(text)
        cursor = offset
    pieces.append(source[cursor:])
    return "".join(pieces)
