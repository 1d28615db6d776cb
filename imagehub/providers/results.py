"""
Unified Result types

Every provider's answer is mapped to exactly one of SuccessResult / FailureResult.
"""

from __future__ import annotations
from dataclasses import dataclass, field, asdict
from typing import Any, List, Optional, Union


@dataclass
class GeneratedImage:
    url: str
    width: Optional[int] = None
    height: Optional[int] = None
    content_type: Optional[str] = None


@dataclass
class TokenUsage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    prompt_tokens_details: Optional[dict] = None
    completion_tokens_details: dict = field(
        default_factory=lambda: {"reasoning_tokens": 0, "image_tokens": 0}
    )


@dataclass
class SuccessResult:
    images: List[GeneratedImage] = field(default_factory=list)
    model: Optional[str] = None
    usage: Optional[TokenUsage] = None
    content: Optional[str] = None
    seed: Optional[int] = None
    request_id: Optional[str] = None
    timings: Optional[dict] = None
    has_nsfw_concepts: Optional[List[bool]] = None

    success = True

    def to_dict(self) -> dict:
        data = {"success": True}
        data.update({k: v for k, v in asdict(self).items() if v is not None})
        return data


@dataclass
class FailureResult:
    error: str
    error_code: Optional[str] = None
    has_nsfw_concepts: Optional[List[bool]] = None
    task_id: Optional[str] = None

    success = False

    def to_dict(self) -> dict:
        data: dict[str, Any] = {"success": False}
        data.update({k: v for k, v in asdict(self).items() if v is not None})
        return data


UnifiedResult = Union[SuccessResult, FailureResult]
