"""Breadcrumb helpers."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

BREADCRUMB_SEPARATOR = " / "


@dataclass(frozen=True)
class Breadcrumb:
    id: str
    name: str


def breadcrumb_display(stack: Sequence[Breadcrumb]) -> str:
    """Render a breadcrumb stack as ``Root / Child / Current``."""
    return BREADCRUMB_SEPARATOR.join(crumb.name for crumb in stack)


def parent_path(stack: Sequence[Breadcrumb]) -> list[Breadcrumb]:
    return list(stack[:-1])


def current_folder(stack: Sequence[Breadcrumb]) -> Breadcrumb | None:
    return stack[-1] if stack else None
