"""
Parameter Resolver

Turns a Model plus the raw request context into the payload a transport sends:
- operation selection (generate vs. edit)
- allow-listing of user fields per operation
- defaults merge: operation defaults < user values < derived size
- size / seed normalization
- prompt and image preconditions, checked before any network call
"""

from __future__ import annotations
import logging
import math
from dataclasses import dataclass, field
from typing import Any, List, Optional

from ..utils.errors import ErrorCode, ImageHubError
from ..utils.image_utils import ImageAttachment
from ..utils.model_registry import Model

logger = logging.getLogger("[ImageHub]")

OPERATION_GENERATE = "generate"
OPERATION_EDIT = "edit"


@dataclass
class RequestContext:
    """Raw user input for one call"""
    prompt: str = ""
    params: dict = field(default_factory=dict)
    uploaded_images: List[ImageAttachment] = field(default_factory=list)
    mask: Optional[ImageAttachment] = None
    messages: Optional[list] = None  # chat providers only

    @property
    def operation(self) -> str:
        return OPERATION_EDIT if self.uploaded_images else OPERATION_GENERATE

    @property
    def has_prompt(self) -> bool:
        return isinstance(self.prompt, str) and bool(self.prompt.strip())


@dataclass
class ResolvedRequest:
    """Provider-ready request"""
    operation: str
    model_id: str
    prompt: str
    params: dict
    images: List[ImageAttachment] = field(default_factory=list)
    mask: Optional[ImageAttachment] = None
    messages: Optional[list] = None

    @property
    def payload(self) -> dict:
        if self.prompt:
            return {"prompt": self.prompt, **self.params}
        return dict(self.params)


def normalize_seed(value: Any) -> Optional[int]:
    """
    Seed as an integer, or None when the value cannot be used

    Finite numbers and numeric strings are floored; blanks, booleans,
    non-finite and non-numeric values yield None.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        return math.floor(value) if math.isfinite(value) else None

    if isinstance(value, str):
        trimmed = value.strip()
        if not trimmed:
            return None
        try:
            parsed = float(trimmed)
        except ValueError:
            return None
        return math.floor(parsed) if math.isfinite(parsed) else None

    return None


def _non_blank(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def resolve_size(operation: str, user_values: dict, model: Model) -> Optional[str]:
    """
    Size precedence: literal size > size tier > operation default > generation default
    """
    meta = model.meta
    for candidate in (user_values.get("size"), user_values.get("size_tier")):
        resolved = _non_blank(candidate)
        if resolved:
            return resolved

    if operation == OPERATION_EDIT:
        resolved = _non_blank(meta.edit_defaults.get("size"))
        if resolved:
            return resolved

    return _non_blank(meta.generation_defaults.get("size"))


def select_operation(model: Model, context: RequestContext) -> str:
    if model.meta.requires_image:
        return OPERATION_GENERATE
    return context.operation


def resolve_parameters(model: Model, context: RequestContext) -> ResolvedRequest:
    """
    Build the resolved request for a model

    Raises:
        ImageHubError: VALIDATION_ERROR for a missing prompt,
            PRECONDITION_FAILED for a missing required image
    """
    meta = model.meta

    if meta.requires_prompt and not context.has_prompt:
        raise ImageHubError(
            message="提示词不能为空",
            code=ErrorCode.VALIDATION_ERROR
        )

    if meta.requires_image and not context.uploaded_images:
        raise ImageHubError(
            message="请先上传需要处理的图片",
            code=ErrorCode.PRECONDITION_FAILED
        )

    operation = select_operation(model, context)
    if operation == OPERATION_EDIT:
        allow_list = meta.edit_params
        defaults = meta.edit_defaults
    else:
        allow_list = meta.generation_params
        defaults = meta.generation_defaults

    user_values = {}
    for key, value in (context.params or {}).items():
        if key not in allow_list:
            logger.debug(f"[ImageHub] Dropping parameter not allowed for {operation}: {key}")
            continue
        if value is None:
            continue
        user_values[key] = value

    size_tier = user_values.pop("size_tier", None)
    size_value = user_values.pop("size", None)

    params = dict(defaults)
    params.pop("size_tier", None)
    params.update(user_values)

    if "seed" in params:
        seed = normalize_seed(params["seed"])
        if seed is None:
            del params["seed"]
        else:
            params["seed"] = seed

    # Edit calls only carry a size when the model lists it for edits
    if operation == OPERATION_GENERATE or "size" in meta.edit_params:
        size = resolve_size(operation, {"size": size_value, "size_tier": size_tier}, model)
        if size:
            params["size"] = size
        else:
            params.pop("size", None)

    model_id = model.id
    if operation == OPERATION_EDIT and meta.edit_model_id.strip():
        model_id = meta.edit_model_id

    return ResolvedRequest(
        operation=operation,
        model_id=model_id,
        prompt=context.prompt.strip() if context.has_prompt else "",
        params=params,
        images=list(context.uploaded_images),
        mask=context.mask,
        messages=context.messages,
    )
