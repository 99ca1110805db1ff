# core/navigation.py
from enum import Enum
from typing import List, NamedTuple, Optional


class View(str, Enum):
    DASHBOARD = "dashboard"
    LIBRARY = "library"
    LOANS = "loans"
    PROFILE = "profile"
    SCANNER = "scanner"
    BUY_NEXT = "buy-next"
    MAINTENANCE = "maintenance"
    LOCATIONS = "locations"
    ANALYTICS = "analytics"
    SETTINGS = "settings"


class OverlayKind(str, Enum):
    BOOK = "book"
    LOAN = "loan"
    USER = "user"


class Overlay(NamedTuple):
    kind: OverlayKind
    entity_id: str


class ViewRouter:
    """Screen stack with an optional detail overlay on top.

    The root view is never popped. Going back closes an open overlay before
    leaving the current screen.
    """

    def __init__(self, root: View = View.DASHBOARD):
        self.root = root
        self._stack: List[View] = [root]
        self.overlay: Optional[Overlay] = None

    @property
    def current(self) -> View:
        return self._stack[-1]

    @property
    def stack(self) -> List[View]:
        return list(self._stack)

    def navigate(self, view: View) -> None:
        """Switch to a top-level screen, as the bottom navigation bar does"""
        self._stack = [self.root] if view == self.root else [self.root, view]
        self.overlay = None

    def push(self, view: View) -> None:
        if view != self.current:
            self._stack.append(view)
        self.overlay = None

    def back(self) -> bool:
        """Go back one step. Returns False when already at the root."""
        if self.overlay is not None:
            self.overlay = None
            return True
        if len(self._stack) > 1:
            self._stack.pop()
            return True
        return False

    def open_overlay(self, kind: OverlayKind, entity_id: str) -> None:
        self.overlay = Overlay(OverlayKind(kind), entity_id)

    def close_overlay(self) -> None:
        self.overlay = None

    def reset(self) -> None:
        self._stack = [self.root]
        self.overlay = None
