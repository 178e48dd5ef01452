"""
L4 Execution — Core subprocess runner.

The SINGLE PLACE where provisioning starts external processes.
Privilege prefixing, environment overrides, output streaming,
timeouts and logging are all centralised here.

Two call shapes:
  - ``stream()``     — generator yielding merged stdout/stderr lines as
                       they are produced; raises ``CommandFailed`` on a
                       non-zero exit. Used by every pipeline step.
  - ``run_quiet()``  — run to completion, return True/False. Used only
                       for best-effort commands whose outcome is
                       re-verified afterwards.
"""

from __future__ import annotations

import logging
import os
import shlex
import signal
import subprocess
import threading
import time
from collections import deque
from typing import Iterator

from ecsetup.core.services.ec_setup.errors import CommandFailed

logger = logging.getLogger(__name__)


def _with_privilege(cmd: list[str], needs_sudo: bool) -> list[str]:
    """Prefix ``sudo`` for privileged commands when not already root.

    Never prompts or pipes a password: the caller is expected to hold
    the rights (or a cached sudo ticket) before provisioning starts.
    """
    if needs_sudo and os.geteuid() != 0:
        return ["sudo"] + cmd
    return cmd


def _kill_process_group(proc: subprocess.Popen, grace: float = 5.0) -> None:
    """Stop ``proc`` and everything it spawned.

    The child leads its own session, so the whole group is signalled:
    SIGTERM first (sudo relays it to the command), then SIGKILL for
    whatever is still alive after ``grace`` seconds.
    """
    try:
        os.killpg(proc.pid, signal.SIGTERM)
    except ProcessLookupError:
        return
    except PermissionError as exc:
        # A privileged group member may refuse our signal
        logger.warning("Cannot signal process group %d: %s", proc.pid, exc)
        return
    try:
        proc.wait(timeout=grace)
    except subprocess.TimeoutExpired:
        pass
    try:
        os.killpg(proc.pid, signal.SIGKILL)
    except OSError:
        pass


def _build_env(env_overrides: dict[str, str] | None) -> dict[str, str]:
    env = os.environ.copy()
    if env_overrides:
        for key, value in env_overrides.items():
            env[key] = os.path.expandvars(value)
    return env


class CommandRunner:
    """Runs external commands for the provisioning pipeline.

    Args:
        timeout: Seconds before a running command is killed. ``None``
            (the default) waits indefinitely.
        tail_lines: How many trailing output lines to keep for error
            reports.
    """

    def __init__(self, *, timeout: int | None = None, tail_lines: int = 30) -> None:
        self.timeout = timeout
        self.tail_lines = tail_lines

    def stream(
        self,
        cmd: list[str],
        *,
        cwd: str | os.PathLike[str] | None = None,
        env_overrides: dict[str, str] | None = None,
        needs_sudo: bool = False,
    ) -> Iterator[str]:
        """Run ``cmd`` and yield each output line as it arrives.

        The process is started lazily on the first ``next()``, so a
        caller can announce the command before it runs.

        Raises:
            CommandFailed: If the command cannot start, exits non-zero,
                or exceeds ``timeout``.
        """
        full_cmd = _with_privilege(list(cmd), needs_sudo)
        logger.debug("Executing: %s (cwd=%s)", shlex.join(full_cmd), cwd)

        start = time.monotonic()
        try:
            proc = subprocess.Popen(
                full_cmd,
                cwd=cwd,
                env=_build_env(env_overrides),
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                stdin=subprocess.DEVNULL,
                text=True,
                errors="replace",
                bufsize=1,
                start_new_session=True,
            )
        except OSError as exc:
            raise CommandFailed(cmd, None, reason=f"could not start: {exc}") from exc

        timed_out = threading.Event()
        timer: threading.Timer | None = None
        if self.timeout:
            def _expire() -> None:
                timed_out.set()
                _kill_process_group(proc)

            timer = threading.Timer(self.timeout, _expire)
            timer.daemon = True
            timer.start()

        tail: deque[str] = deque(maxlen=self.tail_lines)
        try:
            assert proc.stdout is not None
            for line in proc.stdout:
                stripped = line.rstrip()
                tail.append(stripped)
                yield stripped
            proc.wait()
        finally:
            if timer is not None:
                timer.cancel()
            if proc.poll() is None:
                # Consumer stopped early: stop the child too
                _kill_process_group(proc)
                proc.wait()
            if proc.stdout is not None:
                proc.stdout.close()

        elapsed_ms = int((time.monotonic() - start) * 1000)

        if timed_out.is_set():
            raise CommandFailed(
                cmd, proc.returncode,
                output_tail=list(tail),
                reason=f"timed out after {self.timeout}s",
            )

        if proc.returncode != 0:
            logger.warning(
                "Command failed (exit %s, %dms): %s",
                proc.returncode, elapsed_ms, shlex.join(full_cmd),
            )
            raise CommandFailed(cmd, proc.returncode, output_tail=list(tail))

        logger.debug("Finished in %dms: %s", elapsed_ms, shlex.join(full_cmd))

    def run_quiet(self, cmd: list[str], *, needs_sudo: bool = False) -> bool:
        """Run ``cmd`` to completion, discarding output.

        Returns:
            True on exit code 0, False on any failure (logged, not raised).
        """
        full_cmd = _with_privilege(list(cmd), needs_sudo)
        try:
            result = subprocess.run(
                full_cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                stdin=subprocess.DEVNULL,
            )
        except subprocess.TimeoutExpired:
            logger.warning("Timed out (%ss): %s", self.timeout, shlex.join(full_cmd))
            return False
        except OSError as exc:
            logger.warning("Could not run %s: %s", shlex.join(full_cmd), exc)
            return False

        if result.returncode != 0:
            stderr = result.stderr.strip()[-500:] if result.stderr else ""
            logger.info(
                "Best-effort command failed (exit %d): %s %s",
                result.returncode, shlex.join(full_cmd), stderr,
            )
            return False
        return True
