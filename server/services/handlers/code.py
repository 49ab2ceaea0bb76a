"""Script node sandbox - runs user code in an isolated Python subprocess.

The script is the body of a function whose only parameter is ``input``
(the run context). Its return value comes back as JSON on stdout. The child
runs in isolated mode (``-I``) with an empty environment, a temp working
directory, a wall-clock timeout and, on POSIX, CPU/address-space limits.
"""

import asyncio
import json
import sys
import tempfile
import textwrap
from typing import Any, Dict, Optional

from core.logging import get_logger
from services.execution.exceptions import ScriptExecutionError

logger = get_logger(__name__)

try:
    import resource
except ImportError:  # Windows
    resource = None

RESULT_MARKER = "__workflow_script_result__"

# Bootstrap executed by the child interpreter. Reads {"code", "input"} from
# stdin, parses the user body as written and grafts its statements into a
# function so line numbers and string literals stay untouched.
_BOOTSTRAP = textwrap.dedent(f'''
    import ast, json, sys
    payload = json.loads(sys.stdin.read())
    tree = ast.parse(payload["code"], "<script>")
    func = ast.parse("def __workflow_script(input):\\n    pass\\n").body[0]
    func.body = tree.body or [ast.Pass()]
    tree.body = [func]
    ast.fix_missing_locations(tree)
    namespace = {{}}
    exec(compile(tree, "<script>", "exec"), namespace)
    value = namespace["__workflow_script"](payload["input"])
    sys.stdout.write("\\n{RESULT_MARKER}" + json.dumps(value, default=str))
''')


def _limit_resources(cpu_seconds: int, memory_bytes: int):
    """Build a preexec_fn applying rlimits in the child."""
    def apply() -> None:
        resource.setrlimit(resource.RLIMIT_CPU, (cpu_seconds, cpu_seconds))
        if memory_bytes > 0:
            resource.setrlimit(resource.RLIMIT_AS, (memory_bytes, memory_bytes))
    return apply


def _last_error_line(stderr: str) -> str:
    lines = [line.strip() for line in stderr.strip().splitlines() if line.strip()]
    return lines[-1] if lines else "Script execution failed"


class ScriptSandbox:
    """Executes SCRIPT node code out of process."""

    def __init__(self, timeout: float = 10.0, memory_limit_mb: int = 512,
                 python_executable: Optional[str] = None):
        self.timeout = timeout
        self.memory_limit_mb = memory_limit_mb
        self.python_executable = python_executable or sys.executable

    async def run(self, code: str, input_data: Dict[str, Any],
                  timeout: Optional[float] = None) -> Any:
        """Run ``code`` with ``input`` bound to ``input_data``.

        Returns:
            The script's return value (JSON-decoded)

        Raises:
            ScriptExecutionError: Empty code, script exception, timeout or
                unreadable output
        """
        if not code or not code.strip():
            raise ScriptExecutionError("No code provided")

        timeout = timeout or self.timeout
        payload = json.dumps({"code": textwrap.dedent(code), "input": input_data}, default=str)

        preexec_fn = None
        if resource is not None:
            preexec_fn = _limit_resources(int(timeout) + 1, self.memory_limit_mb * 1024 * 1024)

        process = await asyncio.create_subprocess_exec(
            self.python_executable, "-I", "-c", _BOOTSTRAP,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=tempfile.gettempdir(),
            env={},
            preexec_fn=preexec_fn,
        )

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(payload.encode("utf-8")), timeout=timeout
            )
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            logger.error("Script execution timed out", timeout=timeout)
            raise ScriptExecutionError(f"Script timed out after {timeout:g} seconds")

        out_text = stdout.decode("utf-8", errors="replace")
        err_text = stderr.decode("utf-8", errors="replace")

        if process.returncode != 0:
            message = _last_error_line(err_text)
            logger.error("Script execution failed", returncode=process.returncode, error=message)
            raise ScriptExecutionError(message)

        _, marker, encoded = out_text.rpartition(RESULT_MARKER)
        if not marker:
            raise ScriptExecutionError("Script produced no result")
        try:
            return json.loads(encoded)
        except json.JSONDecodeError as e:
            raise ScriptExecutionError(f"Script result is not valid JSON: {e}") from e
