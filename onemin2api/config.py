"""
应用配置
使用 pydantic-settings 从环境变量或 .env 文件中读取配置
"""
import json
from typing import Annotated, List, Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """应用配置类"""

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore',  # 忽略未定义的字段
        populate_by_name=True,
    )

    # 1min.ai API 基础 URL
    onemin_base_url: str = Field(
        default='https://api.1min.ai',
        alias='ONEMIN_BASE_URL',
        description='1min.ai API 基础 URL'
    )

    # 相对资源路径的前缀
    onemin_asset_base_url: str = Field(
        default='https://asset.1min.ai',
        alias='ONEMIN_ASSET_BASE_URL',
        description='1min.ai 资源访问基础 URL'
    )

    # 全局 API Key，请求未携带 Bearer token 时使用
    onemin_api_key: Optional[str] = Field(
        default=None,
        alias='ONEMIN_API_KEY',
        description='1min.ai API Key'
    )

    environment: str = Field(default='development', alias='ENVIRONMENT')
    host: str = Field(default='0.0.0.0', alias='HOST')
    port: int = Field(default=3456, alias='PORT')

    log_level: str = Field(default='INFO', alias='LOG_LEVEL')
    log_color: bool = Field(default=True, alias='LOG_COLOR')

    # CORS 配置
    # 支持两种格式：
    # 1. JSON 格式：CORS_ORIGINS=["https://a.com", "https://b.com"]
    # 2. 逗号分隔：CORS_ORIGINS=https://a.com,https://b.com
    cors_origins: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: ['*'],
        alias='CORS_ORIGINS',
        description='允许的跨域来源'
    )

    # 限流：RATE_LIMIT_MAX 为 0 时关闭
    rate_limit_window_seconds: int = Field(default=15 * 60, alias='RATE_LIMIT_WINDOW_SECONDS')
    rate_limit_max: int = Field(default=100, alias='RATE_LIMIT_MAX')

    # 上游超时（秒）
    upstream_connect_timeout: float = Field(default=10.0, alias='UPSTREAM_CONNECT_TIMEOUT')
    upstream_read_timeout: float = Field(default=300.0, alias='UPSTREAM_READ_TIMEOUT')
    # 上游连接是否启用 HTTP/2（依赖 httpx[http2]）
    upstream_http2: bool = Field(default=True, alias='UPSTREAM_HTTP2')

    @field_validator('cors_origins', mode='before')
    @classmethod
    def parse_cors_origins(cls, v):
        """解析 CORS 来源，支持 JSON 和逗号分隔格式"""
        if v is None:
            return ['*']

        if isinstance(v, list):
            return v

        if isinstance(v, str):
            v = v.strip()
            if v.startswith('[') and v.endswith(']'):
                try:
                    return json.loads(v)
                except json.JSONDecodeError:
                    pass

            if v:
                return [item.strip() for item in v.split(',') if item.strip()]

        return ['*']

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == 'production'

    @property
    def asset_base_url(self) -> str:
        return self.onemin_asset_base_url.rstrip('/')

    def get_config_errors(self) -> List[str]:
        """返回启动前需要处理的配置错误"""
        errors = []
        if self.is_production and not self.onemin_api_key:
            errors.append('ONEMIN_API_KEY is required in production mode')
        if self.port <= 0 or self.port > 65535:
            errors.append('PORT must be between 1 and 65535')
        if self.rate_limit_max < 0:
            errors.append('RATE_LIMIT_MAX must be >= 0')
        if self.rate_limit_window_seconds <= 0:
            errors.append('RATE_LIMIT_WINDOW_SECONDS must be > 0')
        return errors


def load_settings(**overrides) -> Settings:
    """构造配置实例（应用启动时调用一次，之后显式传递）"""
    return Settings(**overrides)


__all__ = [
    'Settings',
    'load_settings',
]
