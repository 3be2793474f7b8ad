"""
上游请求/响应信封
"""
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Union

from onemin2api.models.registry import FeatureType


@dataclass(frozen=True)
class FeatureRequest:
    """
    1min.ai /api/features 的请求体

    每个入站请求新建一个，构造后不可修改；prompt_object 内不会出现值为 None 的键
    """

    type: FeatureType
    model: str
    prompt_object: Mapping[str, Any] = field(default_factory=dict)
    conversation_id: Optional[str] = None

    def __post_init__(self):
        # 冻结 prompt_object，同时去掉调用方未提供的字段
        cleaned = {key: value for key, value in dict(self.prompt_object).items() if value is not None}
        object.__setattr__(self, "prompt_object", MappingProxyType(cleaned))

    def to_payload(self) -> Dict[str, Any]:
        """序列化为上游 JSON 请求体"""
        payload: Dict[str, Any] = {
            "type": FeatureType(self.type).value,
            "model": self.model,
            "promptObject": dict(self.prompt_object),
        }
        if self.conversation_id:
            payload["conversationId"] = self.conversation_id
        return payload


# ============================================================================
# 响应信封：上游结果的位置随功能和版本变化，解析为以下几种形态之一
# ============================================================================

@dataclass(frozen=True)
class TextEnvelope:
    """响应本身就是一个字符串"""
    text: str


@dataclass(frozen=True)
class FieldEnvelope:
    """结果在顶层的 result / response / content 字段中"""
    field: str
    value: Any


@dataclass(frozen=True)
class RecordEnvelope:
    """结果在 aiRecord.aiRecordDetail.resultObject 中（标量或字符串序列）"""
    value: Any


@dataclass(frozen=True)
class UnrecognizedEnvelope:
    """无法识别的形态，保留原始数据"""
    raw: Any


Envelope = Union[TextEnvelope, FieldEnvelope, RecordEnvelope, UnrecognizedEnvelope]
