import asyncio
import logging
import re
import subprocess
from dataclasses import dataclass
from typing import Callable, List, Optional, Union

from .config import AuthContext
from .exceptions import CurlOutputError, CurlProcessError, RackspaceApiError, check_status

log = logging.getLogger(__name__)

STATUS_LINE = re.compile(r"HTTP/[\d.]+\s(\d+)")


@dataclass(frozen=True)
class CurlResult:
    status_code: int


def parse_status(stdout: str) -> int:
    """Pull the code out of the first HTTP status line curl printed with -i"""
    match = STATUS_LINE.search(stdout)
    if not match:
        raise CurlOutputError("No HTTP status line found in curl output")
    return int(match.group(1))


def _result_from_output(stdout: str) -> Union[CurlResult, Exception]:
    try:
        status_code = parse_status(stdout)
    except CurlOutputError as e:
        return e
    log.debug("curl received %s", status_code)
    error: Optional[RackspaceApiError] = check_status(status_code)
    return error if error is not None else CurlResult(status_code=status_code)


def _deliver(result: Union[CurlResult, Exception], callback: Callable):
    if isinstance(result, Exception):
        callback(result)
    else:
        callback(None, result)


class CurlClient:
    auth: AuthContext
    curl_binary: str

    def __init__(self, auth: Optional[AuthContext] = None, curl_binary: str = "curl"):
        self.auth = auth or AuthContext.from_env()
        self.curl_binary = curl_binary

    def build_command(self, method: str, uri: str) -> List[str]:
        cmd = [self.curl_binary, "-i", "-s"]
        if method == "POST":
            cmd += ["-H", "Content-Type: application/json"]
        cmd += ["-H", f"X-AUTH-TOKEN:{self.auth.auth_token}", "-X", method, uri]
        return cmd

    def _run(self, cmd: List[str]) -> Union[CurlResult, Exception]:
        try:
            proc = subprocess.run(cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE, check=False)
        except OSError as e:
            return e
        if proc.returncode != 0:
            return CurlProcessError(proc.returncode, (proc.stderr or b"").decode(errors="replace"))
        # curl -i prints the body too, which may be binary
        return _result_from_output((proc.stdout or b"").decode(errors="replace"))

    def rackspace_curl(self, method: str, uri: str, callback: Callable):
        """
        Issue the request through the curl binary.

        callback receives a single error on failure, or (None, CurlResult) otherwise.
        """
        log.debug("curl %s %s", method, uri)
        _deliver(self._run(self.build_command(method, uri)), callback)


class AsyncCurlClient(CurlClient):
    async def _run(self, cmd: List[str]) -> Union[CurlResult, Exception]:
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd, stdout=asyncio.subprocess.PIPE, stderr=asyncio.subprocess.PIPE
            )
        except OSError as e:
            return e
        stdout, stderr = await proc.communicate()
        if proc.returncode != 0:
            return CurlProcessError(proc.returncode, stderr.decode(errors="replace"))
        return _result_from_output(stdout.decode(errors="replace"))

    async def _dispatch(self, cmd: List[str], callback: Callable):
        _deliver(await self._run(cmd), callback)

    def rackspace_curl(self, method: str, uri: str, callback: Callable) -> asyncio.Task:
        """Must be called from a running event loop. Keep a reference to the returned task until it is done."""
        log.debug("curl %s %s", method, uri)
        return asyncio.get_running_loop().create_task(self._dispatch(self.build_command(method, uri), callback))
