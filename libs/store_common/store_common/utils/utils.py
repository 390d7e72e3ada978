import asyncio
import calendar
import sys
from collections.abc import Callable, Coroutine
from contextlib import AbstractAsyncContextManager, AbstractContextManager
from contextvars import ContextVar, Token
from datetime import UTC, datetime
from threading import Thread
from typing import TYPE_CHECKING, Any, Concatenate, ParamSpec, TypeVar, cast

import structlog

T = TypeVar("T")
R_co = TypeVar("R_co", covariant=True)
P = ParamSpec("P")

if TYPE_CHECKING:
    ClassMethod = classmethod
else:
    ClassMethod = Callable[[Callable[Concatenate[T, P], R_co]], Callable[Concatenate[T, P], R_co]]


def get_now() -> datetime:
    return datetime.now(UTC)


def add_months(value: datetime, months: int) -> datetime:
    """Calendar-month addition, clamped to the last day of the target month (Jan 31 + 1 -> Feb 28/29)."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    if name is None:
        # 0 is get_logger itself, 1 is the calling module
        frame = sys._getframe(1)  # type: ignore
        name = frame.f_globals["__name__"].rsplit(".", 1)[-1]
    return structlog.stdlib.get_logger(name)


def blocking_run_async[T](coro: Coroutine[Any, Any, T], timeout: int | None = None) -> T:
    try:
        return asyncio.run(coro)
    except RuntimeError:
        pass

    future: asyncio.Future[T] = asyncio.Future()

    def run() -> None:
        try:
            future.set_result(asyncio.run(coro))
        except Exception as e:
            future.set_exception(e)

    thread = Thread(target=run, name=f"blocking_run_async__{coro.__name__}", daemon=True)
    thread.start()
    thread.join(timeout)

    return future.result()


class ContextVarManager(AbstractContextManager[T], AbstractAsyncContextManager[T]):
    """Sets a context var on enter and resets it on exit, usable with both ``with`` and ``async with``."""

    _var: ContextVar[T]
    _value: T
    _token: Token[T] | None

    def __init__(self, var: ContextVar[T], value: T) -> None:
        self._var = var
        self._value = value
        self._token = None

    def __enter__(self) -> T:
        self._token = self._var.set(self._value)
        return self._value

    def __exit__(self, *exc_details: object) -> None:
        if self._token is not None:
            self._var.reset(self._token)

    async def __aenter__(self) -> T:
        return self.__enter__()

    async def __aexit__(self, *exc_details: object) -> None:
        self.__exit__(*exc_details)


def use_context_var(var: ContextVar[T], value: T) -> ContextVarManager[T]:
    return ContextVarManager(var, value)


def cached_classmethod[T, **P, R_co](func: Callable[Concatenate[T, P], R_co]) -> ClassMethod[T, P, R_co]:
    def wrapper(cls: T, *args: P.args, **kwargs: P.kwargs) -> R_co:
        if not hasattr(cls, "_cache"):
            setattr(cls, "_cache", {})
        cache = getattr(cls, "_cache")
        key = (func, args, frozenset(kwargs.items()))
        if key not in cache:
            cache[key] = func(cls, *args, **kwargs)
        return cache[key]

    return classmethod(wrapper)  # type: ignore


def deep_merge(base: dict[str, Any], update: dict[str, Any]) -> dict[str, Any]:
    """Deep merge ``update`` into a copy of ``base``; nested dicts are merged, everything else is replaced."""
    merged = base.copy()

    for key, value in update.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = deep_merge(merged[key], cast(dict[str, Any], value))
        else:
            merged[key] = value

    return merged
