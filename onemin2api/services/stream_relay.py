"""
流式转发：把上游字节流重新封装为 OpenAI SSE chunk，或原样透传

状态：OPEN -> RECEIVING -> CLOSING -> DONE，读取出错时 ERRORED -> DONE。
响应头发出后状态码无法再改，出错时直接结束输出且不发送结束标记，
客户端据此判断结果被截断。
"""
import codecs
import json
import time
from enum import Enum
from typing import AsyncIterator, Awaitable, Callable, Dict, Optional

from onemin2api.services.extractors import build_chat_chunk
from onemin2api.services.onemin_client import UpstreamStream
from onemin2api.utils.logger import get_logger

logger = get_logger(__name__)

DONE_SENTINEL = "data: [DONE]\n\n"

SSE_HEADERS: Dict[str, str] = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}

# 返回 True 表示客户端已断开
DisconnectCheck = Callable[[], Awaitable[bool]]


class RelayState(str, Enum):
    OPEN = "open"
    RECEIVING = "receiving"
    CLOSING = "closing"
    ERRORED = "errored"
    DONE = "done"


def format_sse(payload: Dict) -> str:
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n"


def new_completion_id() -> str:
    return f"chatcmpl-{int(time.time() * 1000)}"


class StreamRelay:
    """单个请求的转发过程，不在请求之间共享"""

    def __init__(
        self,
        upstream: UpstreamStream,
        is_disconnected: Optional[DisconnectCheck] = None,
        label: str = "stream",
    ):
        self.upstream = upstream
        self.is_disconnected = is_disconnected
        self.label = label
        self.state = RelayState.OPEN
        self.chunk_count = 0

    async def _client_gone(self) -> bool:
        if self.is_disconnected is None:
            return False
        return await self.is_disconnected()

    async def _receive(self) -> AsyncIterator[bytes]:
        """
        逐块读取上游

        客户端断开时放弃读取；读取异常记录日志后转入 ERRORED，不向外抛出
        """
        self.state = RelayState.RECEIVING
        try:
            async for chunk in self.upstream.iter_bytes():
                if await self._client_gone():
                    logger.info(f"[{self.label}] 客户端已断开，停止读取上游 (chunks={self.chunk_count})")
                    self.state = RelayState.ERRORED
                    return
                self.chunk_count += 1
                yield chunk
            self.state = RelayState.CLOSING
        except Exception as e:
            self.state = RelayState.ERRORED
            logger.error(f"[{self.label}] 读取上游流失败，截断输出 (chunks={self.chunk_count}): {e}", exc_info=True)
        finally:
            await self.upstream.aclose()

    async def chat_events(self, model: str, completion_id: Optional[str] = None) -> AsyncIterator[str]:
        """
        生成 OpenAI chat.completion.chunk 格式的 SSE 事件

        每个上游字节块对应一个 delta 事件（UTF-8 增量解码，跨块的多字节字符
        凑齐后才输出）；正常结束时追加一个 finish_reason=stop 的结束块和 [DONE]
        """
        completion_id = completion_id or new_completion_id()
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

        receiver = self._receive()
        try:
            async for chunk in receiver:
                text = decoder.decode(chunk)
                if text:
                    yield format_sse(build_chat_chunk(completion_id, model, content=text))
        finally:
            # 消费方提前结束时立即关闭上游，不依赖事件循环回收生成器
            await receiver.aclose()

        if self.state is not RelayState.CLOSING:
            self.state = RelayState.DONE
            return

        tail = decoder.decode(b"", final=True)
        if tail:
            yield format_sse(build_chat_chunk(completion_id, model, content=tail))
        yield format_sse(build_chat_chunk(completion_id, model, finish_reason="stop"))
        yield DONE_SENTINEL
        self.state = RelayState.DONE
        logger.debug(f"[{self.label}] ✅ 流式响应完成 id={completion_id}, chunks={self.chunk_count}")

    async def raw_bytes(self) -> AsyncIterator[bytes]:
        """原样透传上游字节，不做任何封装"""
        receiver = self._receive()
        try:
            async for chunk in receiver:
                yield chunk
        finally:
            await receiver.aclose()
        self.state = RelayState.DONE


def relay_chat_stream(
    upstream: UpstreamStream,
    model: str,
    is_disconnected: Optional[DisconnectCheck] = None,
    completion_id: Optional[str] = None,
) -> AsyncIterator[str]:
    return StreamRelay(upstream, is_disconnected, label="chat:stream").chat_events(model, completion_id)


def relay_raw_stream(
    upstream: UpstreamStream,
    is_disconnected: Optional[DisconnectCheck] = None,
    label: str = "features:stream",
) -> AsyncIterator[bytes]:
    return StreamRelay(upstream, is_disconnected, label=label).raw_bytes()
