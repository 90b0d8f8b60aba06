"""Command runner — the one place deploys shell out to git / docker.

Every call is bounded by a timeout and never raises on a non-zero exit:
the caller inspects ``CommandResult.ok`` and the raw stderr text. A missing
binary or a timeout is folded into a failed result the same way.
"""

import logging
import os
import subprocess
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 900  # seconds


def redact(args):
    """Command line for logging, with ``-e KEY=value`` values masked."""
    shown = []
    masked = False
    for arg in args:
        if masked and "=" in arg:
            arg = arg.split("=", 1)[0] + "=***"
        shown.append(arg)
        masked = arg in ("-e", "--env")
    return " ".join(shown)


@dataclass
class CommandResult:
    args: list
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self):
        return self.returncode == 0

    @property
    def error_text(self):
        """Best error description: stderr, else stdout, else the exit code."""
        return (
            self.stderr.strip()
            or self.stdout.strip()
            or f"exit code {self.returncode}"
        )


class CommandRunner:
    """Runs commands through subprocess with a shared timeout and env.

    ``docker_host`` (e.g. ``unix:///var/run/docker.sock``) is exported as
    DOCKER_HOST so docker, compose and buildx all talk to the same daemon.
    """

    def __init__(self, timeout=DEFAULT_TIMEOUT, docker_host=None):
        self.timeout = timeout
        self.env = dict(os.environ)
        if docker_host:
            self.env["DOCKER_HOST"] = docker_host

    def run(self, args, cwd=None, timeout=None):
        timeout = timeout or self.timeout
        logger.debug(f"$ {redact(args)} (cwd={cwd})")
        try:
            proc = subprocess.run(
                args,
                cwd=cwd,
                env=self.env,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired:
            logger.warning(f"Command timed out after {timeout}s: {redact(args)}")
            return CommandResult(
                args, -1, stderr=f"Command timed out after {timeout}s"
            )
        except FileNotFoundError:
            logger.error(f"Executable not found: {args[0]}")
            return CommandResult(args, 127, stderr=f"{args[0]}: command not found")

        result = CommandResult(args, proc.returncode, proc.stdout or "", proc.stderr or "")
        if not result.ok:
            logger.info(
                f"Command failed ({result.returncode}): {redact(args)}: "
                f"{result.error_text[:300]}"
            )
        return result
