"""Labeled tokens, page geometry and the cluster builder.

Tokens are produced upstream by the sequence labeler; this module only
groups them. A :class:`Cluster` is a maximal run of consecutive tokens
sharing the same raw label. Tokens with empty text neither start nor
extend a cluster.
"""
from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from medstruct.labels import Label, parse_label
from medstruct.text_utils import dehyphenize, normalize_dehyphenize_text, normalize_text


@dataclass(frozen=True, slots=True)
class BoundingBox:
    """Axis-aligned box on one page, in page units."""

    page: int
    x: float
    y: float
    width: float
    height: float

    def __post_init__(self) -> None:
        if self.width < 0 or self.height < 0:
            raise ValueError(
                f"BoundingBox size must be non-negative, got {self.width}x{self.height}"
            )

    @property
    def x2(self) -> float:
        return self.x + self.width

    @property
    def y2(self) -> float:
        return self.y + self.height

    def union(self, other: BoundingBox) -> BoundingBox:
        if other.page != self.page:
            raise ValueError(f"Cannot union boxes on pages {self.page} and {other.page}")
        x = min(self.x, other.x)
        y = min(self.y, other.y)
        return BoundingBox(
            page=self.page,
            x=x,
            y=y,
            width=max(self.x2, other.x2) - x,
            height=max(self.y2, other.y2) - y,
        )

    def to_coords(self) -> str:
        return f"{self.page},{self.x:.2f},{self.y:.2f},{self.width:.2f},{self.height:.2f}"


@dataclass(frozen=True, slots=True)
class LabeledToken:
    """One token of the document stream with the label assigned upstream."""

    text: str
    label: str
    index: int
    box: BoundingBox | None = None

    @property
    def is_empty(self) -> bool:
        return not self.text

    @property
    def is_skippable(self) -> bool:
        """Whitespace-only tokens carry no characters to align against."""
        return not self.text or self.text.isspace()


@dataclass(frozen=True, slots=True)
class Cluster:
    """A maximal run of consecutive same-label tokens."""

    label: str
    tokens: tuple[LabeledToken, ...]

    def __post_init__(self) -> None:
        if not self.tokens:
            raise ValueError("Cluster must hold at least one token")

    @property
    def kind(self) -> Label | None:
        return parse_label(self.label)

    @property
    def raw_text(self) -> str:
        return "".join(t.text for t in self.tokens)

    @property
    def text(self) -> str:
        """Dehyphenated, whitespace-collapsed cluster text."""
        return normalize_dehyphenize_text(self.raw_text)

    @property
    def plain_text(self) -> str:
        """Whitespace-collapsed cluster text, hyphens untouched."""
        return normalize_text(self.raw_text)

    @property
    def marker_text(self) -> str:
        """Dehyphenated text with trailing whitespace preserved."""
        return dehyphenize(self.raw_text).replace("\n", " ")

    @property
    def boxes(self) -> list[BoundingBox]:
        return union_boxes(self.tokens)


def build_clusters(tokens: Iterable[LabeledToken]) -> list[Cluster]:
    """Group an ordered token stream into clusters.

    A new cluster starts whenever a non-empty token's label differs from
    the previous non-empty token's label. No text normalization happens
    here.
    """
    clusters: list[Cluster] = []
    current: list[LabeledToken] = []
    current_label: str | None = None
    for token in tokens:
        if token.is_empty:
            continue
        if current and token.label != current_label:
            clusters.append(Cluster(label=current_label or "", tokens=tuple(current)))
            current = []
        current.append(token)
        current_label = token.label
    if current:
        clusters.append(Cluster(label=current_label or "", tokens=tuple(current)))
    return clusters


def union_boxes(tokens: Sequence[LabeledToken]) -> list[BoundingBox]:
    """Union token boxes per page, pages in first-seen order."""
    by_page: dict[int, BoundingBox] = {}
    for token in tokens:
        if token.box is None:
            continue
        prev = by_page.get(token.box.page)
        by_page[token.box.page] = token.box if prev is None else prev.union(token.box)
    return list(by_page.values())


def coords_attribute(boxes: Sequence[BoundingBox]) -> str:
    return ";".join(box.to_coords() for box in boxes)
