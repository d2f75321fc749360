# hackmate/views/notices.py

from dataclasses import dataclass
from typing import Literal

Variant = Literal["default", "destructive"]


@dataclass(frozen=True)
class Notice:
    """A user-visible outcome of an action (what a toast would show)."""

    title: str
    description: str = ""
    variant: Variant = "default"
