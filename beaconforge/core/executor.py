"""Remote execution boundary.

``RemoteExecutor`` is the Protocol every backend satisfies: run one
``ExecRequest`` to completion and return its ``ExecResult``, writing the
requested store slots on success. ``DockerExecutor`` runs each request as a
one-shot container.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol, runtime_checkable

import docker
import requests
from docker.errors import DockerException

from beaconforge.core.artifact_store import NamedArtifactStore
from beaconforge.models.execution import ExecRequest, ExecResult

logger = logging.getLogger(__name__)

# docker-py surfaces API timeouts and dropped connections as requests errors
DOCKER_ERRORS = (DockerException, requests.RequestException)


class RemoteExecutionError(RuntimeError):
    """Raised when a remote step exits non-zero or cannot be run at all."""

    def __init__(self, description: str, exit_code: int, output: str = "") -> None:
        self.description = description
        self.exit_code = exit_code
        self.output = output
        tail = output.strip().splitlines()[-5:] if output else []
        detail = ("\n" + "\n".join(tail)) if tail else ""
        super().__init__(
            f"Step '{description}' failed with exit code {exit_code}{detail}"
        )


@runtime_checkable
class RemoteExecutor(Protocol):
    """Anything with ``run(request) -> ExecResult``."""

    def run(self, request: ExecRequest) -> ExecResult:
        """Run *request* to completion.

        On exit code 0 every ``request.store`` slot must have been
        produced in the artifact store.
        """
        ...


def execute(executor: RemoteExecutor, request: ExecRequest) -> ExecResult:
    """Run *request* and raise RemoteExecutionError unless it succeeded."""
    logger.info("Running step: %s", request.description)
    result = executor.run(request)
    if not result.ok:
        logger.error(
            "Step '%s' exited with %d", request.description, result.exit_code
        )
        raise RemoteExecutionError(request.description, result.exit_code, result.output)
    return result


class DockerExecutor:
    """Runs each request in a fresh container of ``request.image``.

    Mounted artifacts are copied in before start; store slots are copied
    out after a zero exit. The container is always removed.

    Parameters
    ----------
    store:
        Artifact store that mounts are read from and slots written to.
    client:
        A docker client; ``docker.from_env()`` when omitted.
    timeout:
        Seconds to wait for the container to exit.
    """

    def __init__(
        self,
        store: NamedArtifactStore,
        client: Any = None,
        *,
        timeout: int = 600,
    ) -> None:
        self._store = store
        self._client = client or docker.from_env()
        self._timeout = timeout

    def run(self, request: ExecRequest) -> ExecResult:
        try:
            container = self._client.containers.create(
                request.image,
                entrypoint=["bash", "-c"],
                command=[request.command],
                environment=dict(request.env),
                detach=True,
            )
        except DOCKER_ERRORS as exc:
            raise RemoteExecutionError(request.description, -1, str(exc)) from exc

        try:
            for mount_path, name in request.files.items():
                container.put_archive("/", self._store.archive(name, prefix=mount_path))
            container.start()
            status = container.wait(timeout=self._timeout)
            exit_code = int(status.get("StatusCode", -1))
            output = container.logs(stdout=True, stderr=True).decode(
                "utf-8", errors="replace"
            )
            if exit_code == 0:
                for spec in request.store:
                    self._store.put_archive(
                        spec.name,
                        self._fetch(container, spec.src),
                        producer=request.description,
                    )
            return ExecResult(exit_code=exit_code, output=output)
        except DOCKER_ERRORS as exc:
            raise RemoteExecutionError(request.description, -1, str(exc)) from exc
        finally:
            try:
                container.remove(force=True)
            except DOCKER_ERRORS as exc:
                logger.warning("Could not remove container for '%s': %s",
                               request.description, exc)

    @staticmethod
    def _fetch(container: Any, src: str) -> bytes:
        """Return *src* from *container* as a tar stream."""
        stream, _ = container.get_archive(src)
        return b"".join(stream)
