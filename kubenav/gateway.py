from __future__ import annotations

import logging
from typing import Any

from .events import (
    KIND_CONTAINERS,
    KIND_LOGS,
    KIND_NAMESPACES,
    KIND_PODS,
    FetchCommand,
    FetchCompleted,
)
from .kube import KubeService

logger = logging.getLogger(__name__)


def describe_error(exc: BaseException) -> str:
    message = str(exc).strip()
    if not message:
        return type(exc).__name__
    return message


class FetchGateway:
    """Turns a fetch command into exactly one completion.

    Failures never escape: they come back as a completion carrying the
    error text so the requesting level can render it.
    """

    def __init__(self, service: KubeService) -> None:
        self.service = service

    async def _query(self, command: FetchCommand) -> Any:
        kind = command.kind
        if kind == KIND_NAMESPACES:
            return await self.service.list_namespaces()
        if kind == KIND_PODS:
            (namespace,) = command.args
            return await self.service.list_pods(namespace)
        if kind == KIND_CONTAINERS:
            namespace, pod = command.args
            return await self.service.list_containers(namespace, pod)
        if kind == KIND_LOGS:
            namespace, pod, container = command.args
            return await self.service.read_logs(namespace, pod, container)
        raise ValueError(f"Unknown fetch kind: {kind}")

    async def resolve(self, command: FetchCommand) -> FetchCompleted:
        logger.debug(
            "Fetch %s #%s started %s", command.kind, command.generation, command.args
        )
        try:
            payload = await self._query(command)
        except Exception as exc:
            logger.warning(
                "Fetch %s #%s failed: %s", command.kind, command.generation, exc
            )
            return FetchCompleted(
                kind=command.kind,
                generation=command.generation,
                error=describe_error(exc),
            )
        logger.debug("Fetch %s #%s finished", command.kind, command.generation)
        return FetchCompleted(
            kind=command.kind, generation=command.generation, payload=payload
        )
