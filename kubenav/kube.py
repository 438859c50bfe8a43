from __future__ import annotations

import asyncio
import json
import logging
import subprocess
from dataclasses import dataclass
from typing import Optional

from .config import Settings

logger = logging.getLogger(__name__)

CONTAINER_KIND_INIT = "init"
CONTAINER_KIND_REGULAR = "regular"

LOG_OPEN_ERROR = "Error in opening log stream"
LOG_READ_ERROR = "Error copying logs from stream"


class KubeError(Exception):
    pass


class KubeConnectionError(KubeError):
    """kubectl is unusable: missing binary or no resolvable cluster context."""


class KubeCommandError(KubeError):
    pass


class LogStreamError(KubeError):
    pass


@dataclass(frozen=True)
class NamespaceInfo:
    name: str


@dataclass(frozen=True)
class PodInfo:
    name: str
    namespace: str


@dataclass(frozen=True)
class ContainerInfo:
    name: str
    kind: str = CONTAINER_KIND_REGULAR


class KubeService:
    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or Settings()

    def _kubectl_command(self, *args: str) -> list[str]:
        cmd = [self.settings.kubectl]
        if self.settings.context:
            cmd.extend(["--context", self.settings.context])
        cmd.extend(args)
        return cmd

    def _run_kubectl(self, *args: str) -> str:
        cmd = self._kubectl_command(*args)
        logger.debug("Running %s", " ".join(cmd))
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.settings.command_timeout,
            )
        except FileNotFoundError as exc:
            raise KubeConnectionError(
                f"kubectl not found: {self.settings.kubectl}"
            ) from exc
        except subprocess.TimeoutExpired as exc:
            raise KubeCommandError(
                f"kubectl {args[0]} timed out after {self.settings.command_timeout}s"
            ) from exc
        if result.returncode != 0:
            stderr = (result.stderr or "").strip()
            raise KubeCommandError(stderr or "kubectl command failed")
        return result.stdout

    def _get_json(self, *args: str) -> dict:
        output = self._run_kubectl(
            "get",
            *args,
            "-o",
            "json",
            f"--request-timeout={self.settings.request_timeout}",
        )
        try:
            data = json.loads(output)
        except json.JSONDecodeError as exc:
            raise KubeCommandError(f"Unreadable kubectl output: {exc}") from exc
        if not isinstance(data, dict):
            raise KubeCommandError("Unexpected kubectl output")
        return data

    def check_connection(self) -> str:
        """Resolve the active kubeconfig context before any UI is drawn."""
        try:
            output = self._run_kubectl("config", "current-context")
        except KubeConnectionError:
            raise
        except KubeError as exc:
            raise KubeConnectionError(
                f"Unable to load Kubernetes configuration: {exc}"
            ) from exc
        context = self.settings.context or output.strip()
        if not context:
            raise KubeConnectionError("No Kubernetes context is configured")
        return context

    def _list_namespaces(self) -> list[NamespaceInfo]:
        data = self._get_json("namespaces")
        return [
            NamespaceInfo(name=item["metadata"]["name"])
            for item in data.get("items", [])
        ]

    def _list_pods(self, namespace: str) -> list[PodInfo]:
        data = self._get_json("pods", "-n", namespace)
        return [
            PodInfo(name=item["metadata"]["name"], namespace=namespace)
            for item in data.get("items", [])
        ]

    def _list_containers(self, namespace: str, pod: str) -> list[ContainerInfo]:
        data = self._get_json("pod", pod, "-n", namespace)
        spec = data.get("spec") or {}
        containers: list[ContainerInfo] = []
        for container in spec.get("initContainers") or []:
            containers.append(
                ContainerInfo(name=container["name"], kind=CONTAINER_KIND_INIT)
            )
        for container in spec.get("containers") or []:
            containers.append(
                ContainerInfo(name=container["name"], kind=CONTAINER_KIND_REGULAR)
            )
        return containers

    def _read_logs(self, namespace: str, pod: str, container: str) -> str:
        cmd = self._kubectl_command("logs", pod, "-n", namespace, "-c", container)
        logger.debug("Streaming %s", " ".join(cmd))
        try:
            process = subprocess.Popen(
                cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE
            )
        except OSError as exc:
            raise LogStreamError(LOG_OPEN_ERROR) from exc
        try:
            stdout, stderr = process.communicate(
                timeout=self.settings.command_timeout
            )
        except subprocess.TimeoutExpired as exc:
            process.kill()
            process.communicate()
            raise LogStreamError(LOG_READ_ERROR) from exc
        if process.returncode != 0:
            detail = stderr.decode("utf-8", errors="replace").strip()
            if detail:
                raise LogStreamError(f"{LOG_OPEN_ERROR}: {detail}")
            raise LogStreamError(LOG_OPEN_ERROR)
        return stdout.decode("utf-8", errors="replace")

    async def list_namespaces(self) -> list[NamespaceInfo]:
        return await asyncio.to_thread(self._list_namespaces)

    async def list_pods(self, namespace: str) -> list[PodInfo]:
        return await asyncio.to_thread(self._list_pods, namespace)

    async def list_containers(
        self, namespace: str, pod: str
    ) -> list[ContainerInfo]:
        return await asyncio.to_thread(self._list_containers, namespace, pod)

    async def read_logs(self, namespace: str, pod: str, container: str) -> str:
        return await asyncio.to_thread(self._read_logs, namespace, pod, container)
