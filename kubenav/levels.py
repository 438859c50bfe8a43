"""Drill-down navigation levels.

Each level is an immutable value with the same three operations:

* ``init(ctx)`` stamps a fresh generation and returns the fetch that
  populates the level.
* ``handle(event, ctx)`` returns ``(next_level, command)``; the command is
  either ``None``, a :class:`~kubenav.events.FetchCommand` or ``QUIT``.
* ``render(ctx)`` returns the frame as rich ``Text``.

Drilling down stores the current level as the child's ``parent``; going back
returns that stored value untouched, so nothing is re-fetched.
"""

from __future__ import annotations

import itertools
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from typing import Any, ClassVar, Optional, Sequence, Union

from rich.text import Text

from .events import (
    KIND_CONTAINERS,
    KIND_LOGS,
    KIND_NAMESPACES,
    KIND_PODS,
    QUIT,
    Command,
    Event,
    FetchCommand,
    FetchCompleted,
    KeyPress,
)
from .kube import (
    CONTAINER_KIND_INIT,
    CONTAINER_KIND_REGULAR,
    ContainerInfo,
    NamespaceInfo,
    PodInfo,
)

QUIT_KEYS = ("ctrl+c", "q")
UP_KEYS = ("up", "k")
DOWN_KEYS = ("down", "j")
REFRESH_KEYS = ("r",)
SELECT_KEYS = ("l", "enter")
BACK_KEYS = ("h",)

CONTAINER_KIND_LABELS = {
    CONTAINER_KIND_INIT: "init container",
    CONTAINER_KIND_REGULAR: "container",
}
KIND_LABEL_STYLE = "color(44)"
ERROR_STYLE = "bold red"
HINT_STYLE = "dim"
LOG_PLACEHOLDER = "Retrieving logs ..."
# heading, status line and key hint around the item rows
LIST_CHROME_ROWS = 7


class SessionContext:
    """Terminal size plus the generation counter shared by every level."""

    def __init__(self, width: int = 0, height: int = 0) -> None:
        self.width = width
        self.height = height
        self._generations = itertools.count(1)

    def resize(self, width: int, height: int) -> None:
        self.width = max(0, width)
        self.height = max(0, height)

    def next_generation(self) -> int:
        return next(self._generations)


@dataclass(frozen=True)
class SelectableList:
    items: tuple = ()
    cursor: int = 0
    populated: bool = False

    def __len__(self) -> int:
        return len(self.items)

    def move_up(self) -> SelectableList:
        if self.cursor <= 0:
            return self
        return replace(self, cursor=self.cursor - 1)

    def move_down(self) -> SelectableList:
        if self.cursor >= len(self.items) - 1:
            return self
        return replace(self, cursor=self.cursor + 1)

    def selected(self) -> Optional[Any]:
        if 0 <= self.cursor < len(self.items):
            return self.items[self.cursor]
        return None

    def populate(self, items: Sequence[Any]) -> SelectableList:
        items = tuple(items)
        cursor = min(self.cursor, max(0, len(items) - 1))
        return SelectableList(items=items, cursor=max(0, cursor), populated=True)

    def restart(self) -> SelectableList:
        return replace(self, cursor=0, populated=False)


def order_containers(containers: Sequence[ContainerInfo]) -> tuple[ContainerInfo, ...]:
    """Init containers first, then regular ones, each group in provider order."""
    init = [c for c in containers if c.kind == CONTAINER_KIND_INIT]
    regular = [c for c in containers if c.kind != CONTAINER_KIND_INIT]
    return tuple(init + regular)


@dataclass(frozen=True)
class _ListLevel(ABC):
    """Shared list behaviour; only the concrete levels are instantiated."""

    listing: SelectableList = field(default_factory=SelectableList)
    error: Optional[str] = None
    generation: int = 0

    fetch_kind: ClassVar[str] = ""
    heading: ClassVar[str] = ""
    pending_text: ClassVar[str] = ""
    hint: ClassVar[str] = "Press q to quit, r to refresh, h to go back"
    item_rows: ClassVar[int] = 1

    @property
    def populated(self) -> bool:
        return self.listing.populated

    @property
    def cursor(self) -> int:
        return self.listing.cursor

    @property
    def items(self) -> tuple:
        return self.listing.items

    def fetch_args(self) -> tuple[str, ...]:
        return ()

    def init(self, ctx: SessionContext) -> tuple[Level, Optional[Command]]:
        return self._refetch(ctx)

    def _refetch(self, ctx: SessionContext, **changes: Any) -> tuple[Level, Command]:
        generation = ctx.next_generation()
        level = replace(self, generation=generation, **changes)
        return level, FetchCommand(self.fetch_kind, generation, self.fetch_args())

    def accepts(self, event: FetchCompleted) -> bool:
        return event.kind == self.fetch_kind and event.generation == self.generation

    def arrange(self, payload: Sequence[Any]) -> Sequence[Any]:
        return payload

    def handle(
        self, event: Event, ctx: SessionContext
    ) -> tuple[Level, Optional[Command]]:
        if isinstance(event, FetchCompleted):
            if not self.accepts(event):
                return self, None
            if event.failed:
                return replace(self, listing=SelectableList(), error=event.error), None
            listing = self.listing.populate(self.arrange(event.payload or ()))
            return replace(self, listing=listing, error=None), None
        if isinstance(event, KeyPress):
            return self._handle_key(event.key, ctx)
        return self, None

    def _handle_key(
        self, key: str, ctx: SessionContext
    ) -> tuple[Level, Optional[Command]]:
        if key in QUIT_KEYS:
            return self, QUIT
        if key in UP_KEYS:
            return replace(self, listing=self.listing.move_up()), None
        if key in DOWN_KEYS:
            return replace(self, listing=self.listing.move_down()), None
        if key in REFRESH_KEYS:
            return self.refresh(ctx)
        if key in SELECT_KEYS:
            item = self.listing.selected()
            if item is None:
                return self, None
            return self.child(item).init(ctx)
        if key in BACK_KEYS:
            return self.back()
        return self, None

    def refresh(self, ctx: SessionContext) -> tuple[Level, Optional[Command]]:
        return self._refetch(ctx, listing=self.listing.restart(), error=None)

    def back(self) -> tuple[Level, Optional[Command]]:
        parent = getattr(self, "parent", None)
        if parent is None:
            return self, None
        return parent, None

    @abstractmethod
    def child(self, item: Any) -> Level:
        ...

    def item_text(self, item: Any) -> Text:
        return Text(item.name)

    def visible_range(self, height: int) -> range:
        """Rows that fit in ``height`` lines, keeping the cursor on screen."""
        count = len(self.items)
        if height <= 0:
            return range(count)
        capacity = max(1, (height - LIST_CHROME_ROWS) // self.item_rows)
        if count <= capacity:
            return range(count)
        start = min(max(0, self.cursor - capacity + 1), count - capacity)
        return range(start, start + capacity)

    def render(self, ctx: Optional[SessionContext] = None) -> Text:
        text = Text(f"{self.heading}\n\n")
        rows = self.visible_range(ctx.height if ctx is not None else 0)
        for index in rows:
            item = self.items[index]
            marker = ">" if index == self.cursor else " "
            text.append(f"{marker} ")
            text.append_text(self.item_text(item))
            text.append("\n")
        if self.error is not None:
            text.append(f"\nError: {self.error}\n", style=ERROR_STYLE)
        elif not self.populated:
            text.append(f"\n{self.pending_text}\n")
        text.append(f"\n\n{self.hint}", style=HINT_STYLE)
        return text


@dataclass(frozen=True)
class NamespaceLevel(_ListLevel):
    fetch_kind: ClassVar[str] = KIND_NAMESPACES
    heading: ClassVar[str] = "Select Namespace:"
    pending_text: ClassVar[str] = "Retrieving Namespaces"
    hint: ClassVar[str] = "Press q to quit, r to refresh"

    def refresh(self, ctx: SessionContext) -> tuple[Level, Optional[Command]]:
        return NamespaceLevel().init(ctx)

    def child(self, item: NamespaceInfo) -> Level:
        return PodLevel(namespace=item.name, parent=self)


@dataclass(frozen=True)
class PodLevel(_ListLevel):
    namespace: str = ""
    parent: Optional[Level] = field(default=None, repr=False)

    fetch_kind: ClassVar[str] = KIND_PODS
    heading: ClassVar[str] = "Select Pod:"
    pending_text: ClassVar[str] = "Retrieving Pods"

    def fetch_args(self) -> tuple[str, ...]:
        return (self.namespace,)

    def child(self, item: PodInfo) -> Level:
        return ContainerLevel(namespace=self.namespace, pod=item.name, parent=self)


@dataclass(frozen=True)
class ContainerLevel(_ListLevel):
    namespace: str = ""
    pod: str = ""
    parent: Optional[Level] = field(default=None, repr=False)

    fetch_kind: ClassVar[str] = KIND_CONTAINERS
    heading: ClassVar[str] = "Select Container:"
    pending_text: ClassVar[str] = "Retrieving Containers"
    item_rows: ClassVar[int] = 2

    def fetch_args(self) -> tuple[str, ...]:
        return (self.namespace, self.pod)

    def arrange(self, payload: Sequence[ContainerInfo]) -> Sequence[ContainerInfo]:
        return order_containers(payload)

    def child(self, item: ContainerInfo) -> Level:
        return LogLevel(
            namespace=self.namespace,
            pod=self.pod,
            container=item.name,
            parent=self,
        )

    def item_text(self, item: ContainerInfo) -> Text:
        text = Text(f"{item.name}\n\t")
        label = CONTAINER_KIND_LABELS.get(item.kind, item.kind)
        text.append(label, style=KIND_LABEL_STYLE)
        return text


@dataclass(frozen=True)
class LogLevel:
    """Log text for one container.

    The level only holds the text; the controller shows it in a read-only
    text area once ``ready`` and the text area owns scrolling.
    """

    namespace: str = ""
    pod: str = ""
    container: str = ""
    content: Optional[str] = None
    generation: int = 0
    parent: Optional[Level] = field(default=None, repr=False)

    fetch_kind: ClassVar[str] = KIND_LOGS

    @property
    def ready(self) -> bool:
        return self.content is not None

    def init(self, ctx: SessionContext) -> tuple[Level, Optional[Command]]:
        generation = ctx.next_generation()
        command = FetchCommand(
            self.fetch_kind, generation, (self.namespace, self.pod, self.container)
        )
        return replace(self, generation=generation), command

    def handle(
        self, event: Event, ctx: SessionContext
    ) -> tuple[Level, Optional[Command]]:
        if isinstance(event, FetchCompleted):
            if event.kind != self.fetch_kind or event.generation != self.generation:
                return self, None
            if event.failed:
                return replace(self, content=event.error), None
            return replace(self, content=event.payload or ""), None
        if isinstance(event, KeyPress):
            if event.key in QUIT_KEYS:
                return self, QUIT
            if event.key in BACK_KEYS and self.parent is not None:
                return self.parent, None
        return self, None

    def render(self, ctx: Optional[SessionContext] = None) -> Text:
        if not self.ready:
            return Text(LOG_PLACEHOLDER)
        return Text(self.content)

Level = Union[NamespaceLevel, PodLevel, ContainerLevel, LogLevel]
