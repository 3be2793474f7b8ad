import json
from typing import Callable, List, Optional

import httpx


class ChunkedStream(httpx.AsyncByteStream):
    """按给定分块返回响应体，可在中途抛出异常"""

    def __init__(self, chunks: List[bytes], error: Optional[Exception] = None):
        self.chunks = chunks
        self.error = error
        self.closed = False

    async def __aiter__(self):
        for chunk in self.chunks:
            yield chunk
        if self.error is not None:
            raise self.error

    async def aclose(self) -> None:
        self.closed = True


class Upstream:
    """记录发往上游的请求，按路径返回预设响应"""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.routes = {}

    def on(self, method: str, path: str, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.routes[(method, path)] = handler

    def json(self, method: str, path: str, payload, status_code: int = 200) -> None:
        self.on(method, path, lambda request: httpx.Response(status_code, json=payload))

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, text=f"no mock for {request.method} {request.url.path}")
        return handler(request)

    def last_json(self):
        return json.loads(self.requests[-1].content)
