from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Sequence

from leafwise.report.layout import DrawInstruction, InstructionKind, LayoutPage, PageGeometry, TextStyle


@dataclass(frozen=True)
class FooterSpec:
    caption: str
    # distance from the bottom page edge to the bottom of the caption line
    offset: float = 6.0
    line_height: float = 4.0
    style: TextStyle = field(default_factory=lambda: TextStyle('Helvetica', 9, '#795548', 'center'))


def footer_instruction(geometry: PageGeometry, spec: FooterSpec) -> DrawInstruction:
    top = geometry.height - spec.offset - spec.line_height
    if top < geometry.content_bottom:
        raise ValueError(
            f'Footer at {top:.1f}mm would overlap the content area ending at {geometry.content_bottom:.1f}mm'
        )
    return DrawInstruction(
        kind=InstructionKind.text,
        x=geometry.margin,
        y=top,
        width=geometry.usable_width,
        height=spec.line_height,
        text=spec.caption,
        style=spec.style,
    )


def stamp_footer(pages: Sequence[LayoutPage], geometry: PageGeometry, spec: FooterSpec) -> list[LayoutPage]:
    """Return copies of ``pages`` with the footer caption appended to each.

    Call once per export; stamping already stamped pages adds a second footer.
    """
    footer = footer_instruction(geometry, spec)
    return [replace(page, instructions=page.instructions + (footer,)) for page in pages]
