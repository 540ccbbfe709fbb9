"""Executor — runs submitted Python source through a local interpreter.

Source is written to a uniquely named temp file and run as a subprocess
(argument vector, no shell) with a wall-clock timeout and capped output.
Every failure (launch error, non-zero exit, timeout) comes back as
displayable text; nothing here raises into the HTTP layer.

Debug runs add a second temp file holding a fixed tracer script. The user
source never gets spliced into that script: the tracer receives the source
path as argv[1] and the breakpoint lines through HAPTICODE_BREAKPOINTS.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from collections.abc import Iterable
from dataclasses import dataclass

from hapticode.config import ExecutionSettings

logger = logging.getLogger(__name__)

BREAKPOINTS_ENV = "HAPTICODE_BREAKPOINTS"
NO_OUTPUT = "Code executed successfully."
NO_ISSUES = "✓ No issues detected"
TRUNCATED_MARKER = "\n[output truncated]"

_READ_CHUNK = 64 * 1024

TRACER_SCRIPT = '''\
import json
import os
import sys
import types

_source_path = sys.argv[1]
_breakpoints = set(json.loads(os.environ.get("HAPTICODE_BREAKPOINTS") or "[]"))


def _show_locals(frame):
    for name, value in list(frame.f_locals.items()):
        if name.startswith("__") or isinstance(value, types.ModuleType):
            continue
        try:
            text = repr(value)
        except Exception as exc:
            text = f"<unrepresentable: {exc}>"
        print(f"    {name} = {text}")


def _trace(frame, event, arg):
    if frame.f_code.co_filename != _source_path:
        return None
    if event == "line" and frame.f_lineno in _breakpoints:
        print(f"Breakpoint hit at line {frame.f_lineno}")
        _show_locals(frame)
    return _trace


with open(_source_path, encoding="utf-8") as _f:
    _code = compile(_f.read(), _source_path, "exec")

sys.argv = sys.argv[1:]
_namespace = {"__name__": "__main__", "__file__": _source_path}

if _breakpoints:
    sys.settrace(_trace)
try:
    exec(_code, _namespace)
finally:
    sys.settrace(None)
'''


@dataclass
class ExecutionResult:
    stdout: str = ""
    stderr: str = ""
    returncode: int | None = None
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return not self.timed_out and self.returncode == 0

    def display_text(self, empty_message: str = NO_OUTPUT) -> str:
        """stdout if non-empty, else stderr, else the placeholder."""
        return self.stdout.strip() or self.stderr.strip() or empty_message


def _timeout_message(settings: ExecutionSettings) -> str:
    return f"Execution timed out after {settings.timeout_seconds:g} seconds."


def _write_temp(content: str, prefix: str, settings: ExecutionSettings) -> str:
    fd, path = tempfile.mkstemp(prefix=prefix, suffix=".py", dir=settings.temp_dir)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
    except BaseException:
        _remove_temp(path)
        raise
    return path


def _remove_temp(path: str | None) -> None:
    if not path:
        return
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Could not remove temp file {path}: {e}")


async def _read_capped(stream: asyncio.StreamReader, buf: bytearray, limit: int) -> bool:
    """Read a stream to EOF, keeping at most `limit` bytes in `buf`.

    Keeps draining past the cap so the child never blocks on a full pipe.
    Returns True if anything was dropped.
    """
    dropped = False
    while True:
        chunk = await stream.read(_READ_CHUNK)
        if not chunk:
            return dropped
        room = limit - len(buf)
        if room > 0:
            buf.extend(chunk[:room])
        if len(chunk) > max(room, 0):
            dropped = True


def _decode(buf: bytearray, truncated: bool) -> str:
    text = bytes(buf).decode("utf-8", errors="replace")
    return text + TRUNCATED_MARKER if truncated else text


async def run_python(
    script_path: str,
    settings: ExecutionSettings,
    args: Iterable[str] = (),
    env: dict[str, str] | None = None,
    unbuffered: bool = False,
) -> ExecutionResult:
    """Run one script with the configured interpreter.

    Raises OSError only if the interpreter cannot be launched.
    """
    cmd = [settings.python_command]
    if unbuffered:
        cmd.append("-u")
    cmd.append(script_path)
    cmd.extend(args)

    child_env = dict(os.environ)
    child_env["PYTHONIOENCODING"] = "utf-8"
    if env:
        child_env.update(env)

    proc = await asyncio.create_subprocess_exec(
        *cmd,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        env=child_env,
    )

    out_buf, err_buf = bytearray(), bytearray()
    limit = settings.max_output_bytes
    out_cut = err_cut = False
    timed_out = False

    async def collect() -> None:
        nonlocal out_cut, err_cut
        out_cut, err_cut, _ = await asyncio.gather(
            _read_capped(proc.stdout, out_buf, limit),
            _read_capped(proc.stderr, err_buf, limit),
            proc.wait(),
        )

    try:
        await asyncio.wait_for(collect(), timeout=settings.timeout_seconds)
    except asyncio.TimeoutError:
        timed_out = True
        logger.warning(
            f"Process timed out after {settings.timeout_seconds:g}s, killing pid {proc.pid}"
        )
        if proc.returncode is None:
            proc.kill()
        await proc.wait()

    return ExecutionResult(
        stdout=_decode(out_buf, out_cut),
        stderr=_decode(err_buf, err_cut),
        returncode=proc.returncode,
        timed_out=timed_out,
    )


async def run_code(source: str, settings: ExecutionSettings) -> str:
    """Execute source as a script and return the text to display."""
    path = None
    try:
        path = _write_temp(source, "code_", settings)
        result = await run_python(path, settings)
    except UnicodeError as e:
        logger.warning(f"Source could not be encoded for execution: {e}")
        return f"Error:\n{e}"
    except OSError as e:
        logger.error(f"Failed to launch interpreter '{settings.python_command}': {e}")
        return f"Error:\n{e}"
    finally:
        _remove_temp(path)

    if result.timed_out:
        return f"Error:\n{_timeout_message(settings)}"
    if not result.ok:
        detail = result.display_text(f"Process exited with code {result.returncode}")
        return f"Error:\n{detail}"
    return result.display_text(NO_OUTPUT)


async def run_debug(
    source: str, breakpoints: Iterable[int], settings: ExecutionSettings
) -> str:
    """Execute source under the line tracer, reporting breakpoint hits."""
    lines = sorted({int(n) for n in breakpoints})
    source_path = tracer_path = None
    try:
        source_path = _write_temp(source, "debug_", settings)
        tracer_path = _write_temp(TRACER_SCRIPT, "tracer_", settings)
        result = await run_python(
            tracer_path,
            settings,
            args=[source_path],
            env={BREAKPOINTS_ENV: json.dumps(lines)},
            unbuffered=True,
        )
    except (OSError, UnicodeError) as e:
        logger.error(f"Debug run failed to start: {e}")
        return f"Debug error: {e}"
    finally:
        _remove_temp(source_path)
        _remove_temp(tracer_path)

    if result.timed_out:
        message = f"Debug error: {_timeout_message(settings)}"
        partial = result.stdout.strip()
        return f"{partial}\n{message}" if partial else message
    return result.display_text(NO_ISSUES)
