"""
统一日志处理模块，支持彩色输出
"""
import logging
import sys
from typing import Any, Optional, Union


class ColoredFormatter(logging.Formatter):
    """彩色日志格式化器"""

    # ANSI 颜色代码
    COLORS = {
        'DEBUG': '\033[36m',      # 青色
        'INFO': '\033[32m',       # 绿色
        'WARNING': '\033[33m',    # 黄色
        'ERROR': '\033[31m',      # 红色
        'CRITICAL': '\033[35m',   # 紫色
        'RESET': '\033[0m',       # 重置
    }

    def __init__(self, use_color: bool = True, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.use_color = use_color and sys.stdout.isatty()

    def format(self, record: logging.LogRecord) -> str:
        """格式化日志记录"""
        if not self.use_color:
            return super().format(record)

        original_levelname = record.levelname
        original_msg = record.msg
        original_args = record.args

        color = self.COLORS.get(record.levelname, self.COLORS['RESET'])
        reset = self.COLORS['RESET']

        # 先格式化消息再着色，参数已展开，需清空 args
        record.levelname = f"{color}{record.levelname}{reset}"
        record.msg = f"{color}{record.getMessage()}{reset}"
        record.args = ()

        try:
            return super().format(record)
        finally:
            # 恢复原始值（避免影响其他处理器）
            record.levelname = original_levelname
            record.msg = original_msg
            record.args = original_args


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    获取日志记录器

    不单独添加处理器，日志传播到根日志记录器统一输出，避免重复
    """
    return logging.getLogger(name)


def format_fields(**fields: Any) -> str:
    """把结构化字段渲染为 key=value 串，None 值跳过"""
    return ", ".join(f"{key}={value}" for key, value in fields.items() if value is not None)


def log_request(
    logger: logging.Logger,
    method: str,
    path: str,
    status_code: int,
    duration_ms: float
) -> None:
    """记录一次请求的结果"""
    level = logging.INFO
    if status_code >= 500:
        level = logging.ERROR
    elif status_code >= 400:
        level = logging.WARNING
    logger.log(
        level,
        f"[{method}] {path} - {status_code} ({duration_ms:.0f}ms)"
    )


def configure_root_logger(
    level: Union[int, str] = logging.INFO,
    use_color: bool = True,
    format_string: Optional[str] = None
) -> None:
    """
    配置根日志记录器

    Args:
        level: 日志级别，支持 logging 常量或 "INFO" 之类的名称
        use_color: 是否使用彩色输出，默认为 True
        format_string: 自定义格式字符串，如果为 None 则使用默认格式
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    if format_string is None:
        format_string = '%(asctime)s | %(levelname)-8s | %(name)s | %(message)s'

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(ColoredFormatter(
        use_color=use_color,
        fmt=format_string,
        datefmt='%Y-%m-%d %H:%M:%S'
    ))
    root_logger.addHandler(console_handler)

    # 设置第三方库的日志级别
    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("hpack").setLevel(logging.WARNING)
