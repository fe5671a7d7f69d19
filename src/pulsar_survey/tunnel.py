"""
TunnelSupervisor for kubectl port-forward subprocesses.

Each tunneled target gets a local port and a kubectl process forwarding it
to the broker service's admin port. Patterns:

- Pattern 1: one reader task per stream (stdout, stderr) that reads lines
  until EOF and keeps the most recent ones in a bounded buffer
- Pattern 2: readiness is a one-shot asyncio.Future guarded by a pending
  flag; the first line seen on either stream decides it, later lines are
  only logged
- Pattern 3: SIGTERM -> wait -> SIGKILL for termination, always reaping
- Pattern 4: start_new_session=True so kubectl never outlives the run

Example:
    async with TunnelSupervisor(base_port=9123) as tunnels:
        await tunnels.open(target)
        await tunnels.wait_ready(timeout=30.0)
        # target.resolved_url now points at http://127.0.0.1:9123/admin/v2
"""

import asyncio
import logging
import shutil
from collections import deque
from dataclasses import dataclass, field

from pulsar_survey.errors import TunnelLaunchError, TunnelNotReadyError
from pulsar_survey.targets import ADMIN_PATH
from pulsar_survey.types import ClusterTarget

logger = logging.getLogger(__name__)

READY_MARKER = "Forwarding from"
"""kubectl prints this on stdout once the local listener is up."""


def _new_future() -> "asyncio.Future[bool]":
    return asyncio.get_running_loop().create_future()


@dataclass
class TunnelHandle:
    """
    A live port-forwarding process for one target.

    Attributes:
        id: Supervisor-assigned id, increasing from 0
        local_port: Base port + id
        target: The target being forwarded
        process: kubectl process handle (None until launched)
        stdout: Most recent stdout lines
        stderr: Most recent stderr lines
        ready: Resolves True once forwarding is up, False on failure
        pending: True until ready has been resolved
        failure: Why readiness failed, if it did
        readers: Stream reader tasks
    """

    id: int
    local_port: int
    target: ClusterTarget
    process: asyncio.subprocess.Process | None = None
    stdout: deque[str] = field(default_factory=lambda: deque(maxlen=50))
    stderr: deque[str] = field(default_factory=lambda: deque(maxlen=50))
    ready: "asyncio.Future[bool]" = field(default_factory=_new_future)
    pending: bool = True
    failure: str | None = None
    readers: list[asyncio.Task] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.target.label

    def resolve(self, ok: bool, reason: str = "") -> bool:
        """
        Resolve the readiness signal once.

        Returns:
            True if this call decided readiness, False if it was already
            decided.
        """
        if not self.pending:
            return False
        self.pending = False
        if not ok:
            self.failure = reason or "not ready"
        self.ready.set_result(ok)
        return True


async def watch_stream(
    handle: TunnelHandle,
    stream: asyncio.StreamReader,
    *,
    is_stderr: bool,
) -> None:
    """
    Read lines from one of the tunnel's output streams until EOF.

    The first line on either stream decides readiness: a stderr line means
    failure, a stdout line means success only if it carries READY_MARKER.
    Read errors and EOF before that first line also mean failure.

    Args:
        handle: Tunnel whose readiness this stream may decide
        stream: The process's stdout or stderr reader
        is_stderr: True when stream is stderr
    """
    buffer = handle.stderr if is_stderr else handle.stdout

    while True:
        try:
            raw = await stream.readline()
        except (OSError, ValueError) as e:
            logger.error("%s: IO error: %s", handle.name, e)
            handle.resolve(False, f"IO error: {e}")
            return

        if not raw:
            handle.resolve(False, "port-forward exited before forwarding started")
            return

        line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
        buffer.append(line)

        if is_stderr:
            logger.warning("%s proxy said: %s", handle.name, line)
            handle.resolve(False, line)
        else:
            logger.debug("%s proxy said: %s", handle.name, line)
            handle.resolve(READY_MARKER in line, line)


class TunnelSupervisor:
    """
    Owns every port-forwarding process of a run.

    Ids (and so local ports) come from a counter owned by the instance, so
    two tunnels opened by the same supervisor never share a port.
    """

    def __init__(
        self,
        base_port: int,
        kubectl: str = "kubectl",
        remote_port: int = 8080,
    ) -> None:
        """
        Args:
            base_port: First local port; tunnel n listens on base_port + n
            kubectl: Name or path of the kubectl executable
            remote_port: Admin port exposed by the broker service
        """
        self.base_port = base_port
        self.kubectl = kubectl
        self.remote_port = remote_port
        self._next_id = 0
        self._handles: list[TunnelHandle] = []

    @property
    def handles(self) -> list[TunnelHandle]:
        return list(self._handles)

    async def __aenter__(self) -> "TunnelSupervisor":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    def _allocate_id(self) -> int:
        tunnel_id = self._next_id
        self._next_id += 1
        return tunnel_id

    def command(self, target: ClusterTarget, local_port: int) -> list[str]:
        """Build the kubectl arguments (without the executable) for target."""
        args = ["--kubeconfig", target.origin]
        if target.namespace:
            args += ["-n", target.namespace]
        args += [
            "port-forward",
            f"svc/{target.service_name}",
            f"{local_port}:{self.remote_port}",
        ]
        return args

    async def open(self, target: ClusterTarget) -> TunnelHandle:
        """
        Launch port-forwarding for target and start watching its output.

        Sets target.resolved_url to the local admin endpoint. The tunnel
        is not usable until wait_ready() has returned.

        Raises:
            TunnelLaunchError: If kubectl cannot be found or started.
        """
        executable = shutil.which(self.kubectl)
        if executable is None:
            logger.error("%s: '%s' not found in PATH", target.origin, self.kubectl)
            raise TunnelLaunchError(target.label, f"'{self.kubectl}' not found in PATH")

        tunnel_id = self._allocate_id()
        handle = TunnelHandle(
            id=tunnel_id,
            local_port=self.base_port + tunnel_id,
            target=target,
        )
        args = self.command(target, handle.local_port)

        logger.debug(
            "Starting port forwarding on %d:%d on %s",
            handle.local_port,
            self.remote_port,
            target.origin,
        )

        try:
            handle.process = await asyncio.create_subprocess_exec(
                executable,
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                start_new_session=True,
            )
        except OSError as e:
            logger.error("%s: Failed to launch port-forwarding: %s", target.origin, e)
            raise TunnelLaunchError(target.label, str(e)) from e

        handle.readers = [
            asyncio.create_task(
                watch_stream(handle, handle.process.stdout, is_stderr=False)
            ),
            asyncio.create_task(
                watch_stream(handle, handle.process.stderr, is_stderr=True)
            ),
        ]
        self._handles.append(handle)
        target.resolved_url = f"http://127.0.0.1:{handle.local_port}{ADMIN_PATH}"
        return handle

    async def wait_ready(self, timeout: float) -> None:
        """
        Block until every open tunnel has reported forwarding.

        Waits once per tunnel, in the order they were opened. All tunnels
        share one deadline, timeout seconds from the call.

        Raises:
            TunnelNotReadyError: For the first tunnel that failed or was
                not ready by the deadline.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout

        for handle in self._handles:
            remaining = max(0.0, deadline - loop.time())
            try:
                ok = await asyncio.wait_for(asyncio.shield(handle.ready), timeout=remaining)
            except asyncio.TimeoutError:
                handle.resolve(False, f"no forwarding within {timeout:g}s")
                ok = handle.ready.result()

            if not ok:
                logger.error("Failed to start port-forwarding for %s", handle.name)
                raise TunnelNotReadyError(handle.name, handle.failure or "not ready")

            logger.debug("%s: forwarding on local port %d", handle.name, handle.local_port)

        if self._handles:
            logger.info("All %d port-forwards are up", len(self._handles))

    async def terminate(self, handle: TunnelHandle, timeout: float = 5.0) -> None:
        """
        Stop one tunnel's process and its reader tasks.

        Sends SIGTERM, escalates to SIGKILL after timeout, and always
        awaits the process so no zombie is left behind.
        """
        proc = handle.process
        if proc is not None and proc.returncode is None:
            try:
                proc.terminate()
            except ProcessLookupError:
                pass  # Exited between the returncode check and the signal
            try:
                await asyncio.wait_for(proc.wait(), timeout=timeout)
            except asyncio.TimeoutError:
                proc.kill()
                await proc.wait()

        for task in handle.readers:
            task.cancel()
        await asyncio.gather(*handle.readers, return_exceptions=True)
        handle.resolve(False, "tunnel closed")

    async def close(self, timeout: float = 5.0) -> None:
        """Terminate every tunnel opened by this supervisor."""
        for handle in self._handles:
            await self.terminate(handle, timeout=timeout)
        self._handles.clear()
