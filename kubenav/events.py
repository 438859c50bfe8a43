"""Events consumed by navigation levels and the commands they emit."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Union

KIND_NAMESPACES = "namespaces"
KIND_PODS = "pods"
KIND_CONTAINERS = "containers"
KIND_LOGS = "logs"


@dataclass(frozen=True)
class KeyPress:
    key: str


@dataclass(frozen=True)
class Resize:
    width: int
    height: int


@dataclass(frozen=True)
class FetchCompleted:
    """Result of one fetch; exactly one of ``payload``/``error`` is meaningful."""

    kind: str
    generation: int
    payload: Any = None
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


Event = Union[KeyPress, Resize, FetchCompleted]


@dataclass(frozen=True)
class FetchCommand:
    kind: str
    generation: int
    args: tuple[str, ...] = ()


class Quit:
    def __repr__(self) -> str:
        return "QUIT"


QUIT = Quit()

Command = Union[FetchCommand, Quit]
