import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Union

import aiohttp
import requests
from aiohttp_requests import requests as async_requests

from .config import AuthContext
from .exceptions import check_status, is_classified

log = logging.getLogger(__name__)

AUTH_HEADER = "X-AUTH-TOKEN"

Continuation = Callable[..., Any]


@dataclass(frozen=True)
class RequestOptions:
    uri: str
    method: str = "GET"
    body: Any = None


@dataclass
class RequestDescriptor:
    method: str
    uri: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[str] = None


@dataclass(frozen=True)
class Outcome:
    status_code: Optional[int] = None
    body: Optional[str] = None
    response: Any = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def build_request(method: str, uri: str, body: Any, auth: AuthContext) -> RequestDescriptor:
    headers = {AUTH_HEADER: auth.auth_token}
    serialized = None
    if body is not None:
        headers["Content-Type"] = "application/json"
        serialized = json.dumps(body)
    return RequestDescriptor(method=method, uri=uri, headers=headers, body=serialized)


def normalize_arguments(
    *args,
) -> Tuple[RequestOptions, Optional[Continuation], Optional[Continuation]]:
    """
    Split a flexible rackspace() call into request options and its continuations.

    Trailing callables are popped from the end: the last one is the success
    continuation, the one before it (if any) is the general callback. What's left is
    either a uri, a mapping/RequestOptions with method/uri/body, or a (method, uri) pair.
    """
    args = list(args)
    success = args.pop() if args and callable(args[-1]) else None
    callback = args.pop() if args and callable(args[-1]) else None

    if len(args) == 1:
        target = args[0]
        if isinstance(target, str):
            options = RequestOptions(uri=target)
        elif isinstance(target, RequestOptions):
            options = target
        elif isinstance(target, Mapping):
            options = RequestOptions(
                uri=target["uri"], method=target.get("method") or "GET", body=target.get("body")
            )
        else:
            raise TypeError(f"Expected a uri, mapping or RequestOptions, got {type(target).__name__}")
    elif len(args) == 2:
        options = RequestOptions(uri=args[1], method=args[0])
    else:
        raise TypeError(f"Expected a uri or a (method, uri) pair, got {len(args)} positional arguments")
    return options, callback, success


def _coerce_options(options: Union[str, RequestOptions, Mapping]) -> RequestOptions:
    if isinstance(options, RequestOptions):
        return options
    return normalize_arguments(options)[0]


def _classify(status_code: int, body: Optional[str], response: Any) -> Outcome:
    log.debug("Received %s", status_code)
    error = check_status(status_code, response=response)
    if error is None and not is_classified(status_code):
        # Unknown codes still count as success, but make them visible
        log.warning("Unclassified status code %s treated as success", status_code)
    return Outcome(status_code=status_code, body=body, response=response, error=error)


def _deliver(outcome: Outcome, callback: Optional[Continuation], success: Optional[Continuation]):
    if not outcome.ok:
        if callback:
            callback(outcome.error)
        return
    if success:
        success(outcome.body, outcome.response)


class Client:
    auth: AuthContext
    raise_errors: bool

    def __init__(self, auth: Optional[AuthContext] = None, raise_errors: bool = True):
        # Try getting the auth from the environment if none is provided
        self.auth = auth or AuthContext.from_env()
        self.raise_errors = raise_errors

    def storage_url(self, *segments: str) -> str:
        return self.auth.storage_path(*segments)

    def _send(self, descriptor: RequestDescriptor) -> Outcome:
        log.debug("%s %s", descriptor.method, descriptor.uri)
        try:
            resp: requests.Response = requests.request(
                descriptor.method, descriptor.uri, headers=descriptor.headers, data=descriptor.body
            )
        except requests.RequestException as e:
            log.debug("Transport error for %s %s: %r", descriptor.method, descriptor.uri, e)
            return Outcome(error=e)
        return _classify(resp.status_code, resp.text, resp)

    def rackspace(self, *args):
        """
        Core method that sends a request to Rackspace and routes the result to continuations.

        Accepted forms (the first two are equivalent):
            rackspace("https://storage/url", callback, success)
            rackspace("GET", "https://storage/url", callback, success)
            rackspace("DELETE", "https://storage/url", callback)
            rackspace({"method": "POST", "uri": "https://storage/url", "body": {...}}, callback, success)

        `callback` receives the error on failure; `success` receives (body, response).
        """
        options, callback, success = normalize_arguments(*args)
        descriptor = build_request(options.method, options.uri, options.body, self.auth)
        _deliver(self._send(descriptor), callback, success)

    def request(self, options: Union[str, RequestOptions, Mapping]) -> Outcome:
        options = _coerce_options(options)
        outcome = self._send(build_request(options.method, options.uri, options.body, self.auth))
        if self.raise_errors and not outcome.ok:
            raise outcome.error
        return outcome

    def get(self, uri: str) -> Outcome:
        return self.request(RequestOptions(uri=uri))

    def head(self, uri: str) -> Outcome:
        return self.request(RequestOptions(uri=uri, method="HEAD"))

    def delete(self, uri: str) -> Outcome:
        return self.request(RequestOptions(uri=uri, method="DELETE"))

    def copy(self, uri: str) -> Outcome:
        return self.request(RequestOptions(uri=uri, method="COPY"))

    def put(self, uri: str, body: Any = None) -> Outcome:
        return self.request(RequestOptions(uri=uri, method="PUT", body=body))

    def post(self, uri: str, body: Any = None) -> Outcome:
        return self.request(RequestOptions(uri=uri, method="POST", body=body))


class AsyncClient(Client):
    @classmethod
    def from_sync_client(cls, sync: Client) -> 'AsyncClient':
        return cls(auth=sync.auth, raise_errors=sync.raise_errors)

    async def _send(self, descriptor: RequestDescriptor) -> Outcome:
        log.debug("%s %s", descriptor.method, descriptor.uri)
        try:
            # Go through the session directly so methods like COPY are allowed
            resp: aiohttp.ClientResponse = await async_requests.session.request(
                descriptor.method, descriptor.uri, headers=descriptor.headers, data=descriptor.body
            )
            text = await resp.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            log.debug("Transport error for %s %s: %r", descriptor.method, descriptor.uri, e)
            return Outcome(error=e)
        return _classify(resp.status, text, resp)

    async def _dispatch(self, descriptor: RequestDescriptor, callback, success):
        _deliver(await self._send(descriptor), callback, success)

    def rackspace(self, *args) -> asyncio.Task:
        """
        Same call forms as Client.rackspace, but the request runs on the current event loop.

        Returns immediately with the scheduled task; the continuation fires when it completes.
        Must be called from a running event loop, and callers should keep a reference to the
        task until it is done.
        """
        options, callback, success = normalize_arguments(*args)
        descriptor = build_request(options.method, options.uri, options.body, self.auth)
        return asyncio.get_running_loop().create_task(self._dispatch(descriptor, callback, success))

    async def request(self, options: Union[str, RequestOptions, Mapping]) -> Outcome:
        options = _coerce_options(options)
        outcome = await self._send(build_request(options.method, options.uri, options.body, self.auth))
        if self.raise_errors and not outcome.ok:
            raise outcome.error
        return outcome

    async def get(self, uri: str) -> Outcome:
        return await self.request(RequestOptions(uri=uri))

    async def head(self, uri: str) -> Outcome:
        return await self.request(RequestOptions(uri=uri, method="HEAD"))

    async def delete(self, uri: str) -> Outcome:
        return await self.request(RequestOptions(uri=uri, method="DELETE"))

    async def copy(self, uri: str) -> Outcome:
        return await self.request(RequestOptions(uri=uri, method="COPY"))

    async def put(self, uri: str, body: Any = None) -> Outcome:
        return await self.request(RequestOptions(uri=uri, method="PUT", body=body))

    async def post(self, uri: str, body: Any = None) -> Outcome:
        return await self.request(RequestOptions(uri=uri, method="POST", body=body))
