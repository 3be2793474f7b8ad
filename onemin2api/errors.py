"""
错误分类与统一的 OpenAI 风格错误响应体

所有入口捕获异常后统一转换为 APIError，再由应用级异常处理器输出
{"error": {"message", "type", "details"?}}
"""
from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(Enum):
    """封闭的错误类别：(HTTP 状态码, 机器可读 type)"""

    VALIDATION = (400, "invalid_request_error")
    AUTHENTICATION = (401, "authentication_error")
    NOT_FOUND = (404, "not_found_error")
    RATE_LIMIT = (429, "rate_limit_exceeded")
    NOT_IMPLEMENTED = (501, "not_implemented")
    UPSTREAM = (500, "upstream_error")
    SERVER = (500, "server_error")

    @property
    def status_code(self) -> int:
        return self.value[0]

    @property
    def code(self) -> str:
        return self.value[1]


# 上游状态码中可以原样转发的部分
_UPSTREAM_FORWARDED = {
    400: ErrorKind.VALIDATION,
    401: ErrorKind.AUTHENTICATION,
    403: ErrorKind.AUTHENTICATION,
    404: ErrorKind.NOT_FOUND,
    429: ErrorKind.RATE_LIMIT,
}


class APIError(Exception):
    """带 HTTP 状态码和错误类别的异常"""

    def __init__(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.SERVER,
        details: Optional[Any] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.details = details
        self.status_code = status_code or kind.status_code
        self.upstream_status: Optional[int] = None

    @property
    def code(self) -> str:
        return self.kind.code

    def to_dict(self) -> Dict[str, Any]:
        error: Dict[str, Any] = {
            "message": self.message,
            "type": self.code,
        }
        if self.details:
            error["details"] = self.details
        return {"error": error}

    def __repr__(self) -> str:
        return f"APIError(kind={self.kind.name}, status={self.status_code}, message={self.message!r})"

    @classmethod
    def validation(cls, message: str, details: Optional[Any] = None) -> "APIError":
        return cls(message, ErrorKind.VALIDATION, details)

    @classmethod
    def authentication(cls, message: str = "Missing or invalid API key") -> "APIError":
        return cls(message, ErrorKind.AUTHENTICATION)

    @classmethod
    def not_found(cls, resource: str) -> "APIError":
        return cls(f"{resource} not found", ErrorKind.NOT_FOUND)

    @classmethod
    def rate_limited(cls, message: str = "Too many requests, please try again later") -> "APIError":
        return cls(message, ErrorKind.RATE_LIMIT)

    @classmethod
    def not_implemented(cls, feature: str) -> "APIError":
        return cls(f"{feature} is not implemented", ErrorKind.NOT_IMPLEMENTED)

    @classmethod
    def upstream(cls, status: int, body: str) -> "APIError":
        """
        上游返回非 2xx

        原始响应文本不做修改地放进 message，便于排查；
        可识别的状态码原样转发，其余统一为 500
        """
        forwarded = _UPSTREAM_FORWARDED.get(status)
        error = cls(
            f"API Error {status}: {body}",
            ErrorKind.UPSTREAM,
            status_code=status if forwarded else ErrorKind.UPSTREAM.status_code,
        )
        error.upstream_status = status
        return error

    @classmethod
    def wrap(cls, exc: BaseException) -> "APIError":
        """把未分类的异常包装为 500，保留原始信息"""
        if isinstance(exc, APIError):
            return exc
        return cls(str(exc) or exc.__class__.__name__, ErrorKind.SERVER)
