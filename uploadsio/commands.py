"""
Run external conversion tools against a source/target file pair.

Commands are argument vectors, never shell strings.  INPUT and OUTPUT mark where
the source and target paths go, either as whole arguments or as the literal
substrings ``${input}`` and ``${output}`` inside an argument:

    executor.exec(source, target, ["convert", "${input}[0]", "-resize", "250x175", OUTPUT])
"""
import enum
import logging
import os
import shutil
import signal
import subprocess
import tempfile
from typing import List, Optional, Sequence, Union

from .errors import CommandError, CommandTimeout
from .schemas import FileHandle
from .settings import Settings

logger = logging.getLogger(__name__)


class Placeholder(str, enum.Enum):
    INPUT = "${input}"
    OUTPUT = "${output}"


INPUT = Placeholder.INPUT
OUTPUT = Placeholder.OUTPUT

Argument = Union[str, Placeholder, os.PathLike]

EXEC_PREFIX = "uio-exec-"


def build_argv(
    argv: Sequence[Argument], input_path: str, output_path: str
) -> List[str]:
    """Substitute placeholders positionally, without a shell"""
    built: List[str] = []
    for arg in argv:
        if arg is Placeholder.INPUT:
            built.append(input_path)
        elif arg is Placeholder.OUTPUT:
            built.append(output_path)
        else:
            arg = os.fspath(arg)
            built.append(
                arg.replace(Placeholder.INPUT.value, input_path).replace(
                    Placeholder.OUTPUT.value, output_path
                )
            )
    return built


def _signal_group(process: subprocess.Popen, sig: int):
    try:
        os.killpg(process.pid, sig)
    except ProcessLookupError:
        pass


class CommandExecutor:
    def __init__(self, timeout: float = 15.0, grace_period: float = 2.0):
        self.timeout = timeout
        self.grace_period = grace_period

    @classmethod
    def from_settings(cls, settings: Settings) -> "CommandExecutor":
        return cls(
            timeout=settings.exec_timeout, grace_period=settings.exec_grace_period
        )

    def exec(
        self,
        source: FileHandle,
        target: FileHandle,
        argv: Sequence[Argument],
        timeout: Optional[float] = None,
    ) -> FileHandle:
        """
        Run argv with source.location as input and a fresh private path as output.

        :returns: target with location set to the produced file
        :raises CommandError: on launch failure, non-zero exit, or missing output
        :raises CommandTimeout: when the command outlives its timeout
        """
        if source.location is None:
            raise CommandError(
                "Source file has no location", argv=[str(a) for a in argv]
            )
        timeout = self.timeout if timeout is None else timeout
        workdir = tempfile.mkdtemp(prefix=EXEC_PREFIX)
        target_path = os.path.join(workdir, os.path.basename(target.name))
        cmd = build_argv(argv, source.location, target_path)
        try:
            output = self._run(cmd, timeout)
        except BaseException:
            shutil.rmtree(workdir, ignore_errors=True)
            raise
        if not os.path.exists(target_path):
            shutil.rmtree(workdir, ignore_errors=True)
            raise CommandError(
                f"Command exited 0 without writing {target.name}",
                exit_code=0,
                output=output,
                argv=cmd,
                reason="file_not_found",
            )
        return target.replace(location=target_path)

    @staticmethod
    def discard(file: FileHandle):
        """Remove an output produced by exec.  Any other location is left alone."""
        if file.location is None:
            return
        workdir = os.path.dirname(file.location)
        if os.path.basename(workdir).startswith(EXEC_PREFIX):
            shutil.rmtree(workdir, ignore_errors=True)

    def _run(self, cmd: List[str], timeout: float) -> str:
        """Run cmd in its own process group and return combined stdout and stderr"""
        logger.info("exec cmd=%s", cmd)
        try:
            process = subprocess.Popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                start_new_session=True,
            )
        except OSError as e:
            raise CommandError(
                f"Could not launch {cmd[0]}: {e}",
                exit_code=None,
                output=str(e),
                argv=cmd,
                reason=e,
            ) from e

        with process:
            try:
                out, _ = process.communicate(timeout=timeout)
            except subprocess.TimeoutExpired:
                output = self._terminate(process)
                logger.warning("exec timeout after %ss cmd=%s", timeout, cmd)
                raise CommandTimeout(
                    f"Command timed out after {timeout}s",
                    exit_code="timeout",
                    output=output,
                    argv=cmd,
                    reason="timeout",
                )
            except BaseException:
                self._terminate(process)
                raise

        output = out.decode(errors="replace")
        logger.info("exec exit code=%s", process.returncode)
        if process.returncode != 0:
            raise CommandError(
                f"Command exited with {process.returncode}",
                exit_code=process.returncode,
                output=output,
                argv=cmd,
            )
        return output

    def _terminate(self, process: subprocess.Popen) -> str:
        """Stop the whole process group: SIGTERM, then SIGKILL after the grace period"""
        _signal_group(process, signal.SIGTERM)
        try:
            out, _ = process.communicate(timeout=self.grace_period)
        except subprocess.TimeoutExpired:
            _signal_group(process, signal.SIGKILL)
            try:
                out, _ = process.communicate(timeout=self.grace_period)
            except subprocess.TimeoutExpired:
                # a detached grandchild still holds the pipe open
                process.kill()
                process.wait()
                out = b""
        # members of the group that ignored SIGTERM
        _signal_group(process, signal.SIGKILL)
        return (out or b"").decode(errors="replace")
