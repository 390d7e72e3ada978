from __future__ import annotations

from contextvars import ContextVar, Token
from uuid import uuid4

from pydantic import Field

from store_common.utils import ContextVarManager, JsonModel, use_context_var


class RequestContext(JsonModel):
    """Per-request fields merged into every log line emitted while handling the request."""

    request_id: str = Field(default_factory=lambda: uuid4().hex)
    endpoint: str | None = None

    owner_id: str | None = None
    shard: str | None = None
    order_id: str | None = None

    @staticmethod
    def get() -> RequestContext:
        return _context_var.get()

    @staticmethod
    def get_or_none() -> RequestContext | None:
        return _context_var.get(None)

    @staticmethod
    def set(request_context: RequestContext) -> Token[RequestContext]:
        return _context_var.set(request_context)

    @staticmethod
    def reset(token: Token[RequestContext]) -> None:
        _context_var.reset(token)

    @staticmethod
    def context() -> ContextVarManager[RequestContext]:
        return use_context_var(_context_var, RequestContext())

    @staticmethod
    def update(**fields: str | None) -> None:
        """Fill in fields on the current context, if there is one."""
        request_context = _context_var.get(None)
        if request_context is None:
            return
        for key, value in fields.items():
            if value is not None:
                setattr(request_context, key, value)


_context_var: ContextVar[RequestContext] = ContextVar("request_context")
