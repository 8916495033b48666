from __future__ import annotations

import html
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Tuple, Union

from src.profile_schema import ContentBlock

BlockLike = Union[ContentBlock, Mapping[str, Any]]


def _field(block: BlockLike, name: str) -> Any:
    if isinstance(block, Mapping):
        return block.get(name)
    return getattr(block, name, None)


def _as_sequence(value: Any) -> List[Any]:
    # current shape: a list; legacy shape: one string; anything else is empty.
    if isinstance(value, (list, tuple)) and value:
        return list(value)
    if isinstance(value, str) and value:
        return [value]
    return []


def normalize_links(block: BlockLike) -> List[Optional[str]]:
    return [str(link) if link else None for link in _as_sequence(_field(block, "imageLink"))]


def _image_pairs(block: BlockLike) -> List[Tuple[str, Optional[str]]]:
    """Pair each usable image with its positional link; empty or null images are dropped with their link."""
    links = normalize_links(block)
    pairs = []
    for index, url in enumerate(_as_sequence(_field(block, "image"))):
        if not url:
            continue
        pairs.append((str(url), links[index] if index < len(links) else None))
    return pairs


def normalize_images(block: BlockLike) -> List[str]:
    return [url for url, _ in _image_pairs(block)]


@dataclass(frozen=True)
class NormalizedBlock:
    type: str
    content: Optional[str]
    duration: Optional[str]
    glass_effect: Optional[bool]
    images: List[str] = field(default_factory=list)
    links: List[Optional[str]] = field(default_factory=list)

    def link_for(self, index: int) -> Optional[str]:
        """Links pair with images by position; a shorter link list leaves the rest unlinked."""
        if 0 <= index < len(self.links):
            return self.links[index]
        return None


def normalize_block(block: BlockLike) -> NormalizedBlock:
    pairs = _image_pairs(block)
    return NormalizedBlock(
        type=str(_field(block, "type") or "text"),
        content=_field(block, "content"),
        duration=_field(block, "duration"),
        glass_effect=_field(block, "enableGlassEffect"),
        images=[url for url, _ in pairs],
        links=[link for _, link in pairs],
    )


def resolve_glass_effect(block_value: Optional[bool], section_value: Optional[bool]) -> bool:
    if block_value is not None:
        return bool(block_value)
    return bool(section_value)


class CarouselState:
    """Per-view selection over a block's images. Never persisted."""

    def __init__(self, size: int) -> None:
        self.size = max(0, int(size))
        self.index = 0

    @property
    def current(self) -> Optional[int]:
        return self.index if self.size else None

    def next(self) -> Optional[int]:
        if self.size:
            self.index = self.index + 1 if self.index < self.size - 1 else 0
        return self.current

    def previous(self) -> Optional[int]:
        if self.size:
            self.index = self.index - 1 if self.index > 0 else self.size - 1
        return self.current

    def select(self, index: int) -> Optional[int]:
        if self.size and 0 <= index < self.size:
            self.index = index
        return self.current


_GLASS_CLASSES = "glass-panel"


def _render_text(block: NormalizedBlock) -> str:
    if not block.content:
        return ""
    content = html.escape(block.content)
    if block.type == "title":
        duration = f' <span class="block-duration">({html.escape(block.duration)})</span>' if block.duration else ""
        return f'<h2 class="block-title">{content}{duration}</h2>'
    duration = f' <span class="block-duration">• {html.escape(block.duration)}</span>' if block.duration else ""
    return f'<p class="block-text">{content}{duration}</p>'


def _render_carousel(block: NormalizedBlock, carousel: CarouselState) -> str:
    index = carousel.current
    if index is None or index >= len(block.images):
        return ""
    alt = html.escape(block.content or f"Image {index + 1}")
    image = f'<img src="{html.escape(block.images[index])}" alt="{alt}" />'
    link = block.link_for(index)
    if link:
        image = f'<a href="{html.escape(link)}" target="_blank" rel="noopener noreferrer">{image}</a>'
    counter = ""
    if len(block.images) > 1:
        counter = f'<div class="carousel-counter">{index + 1} / {len(block.images)}</div>'
    return f'<div class="block-carousel">{image}{counter}</div>'


def render_block_html(
    block: BlockLike,
    section_glass_effect: Optional[bool] = False,
    carousel: Optional[CarouselState] = None,
) -> str:
    normalized = normalize_block(block)
    state = carousel or CarouselState(len(normalized.images))
    classes = "content-block"
    if resolve_glass_effect(normalized.glass_effect, section_glass_effect):
        classes = f"{classes} {_GLASS_CLASSES}"
    return f'<div class="{classes}">{_render_text(normalized)}{_render_carousel(normalized, state)}</div>'
