"""Invocation of the external submit/draft-save collaborators."""

from __future__ import annotations

import asyncio
import inspect
from typing import Any, Awaitable, Callable, Optional, Union

from ..schemas.session import AdaptiveMetadata, ResponseMap

SubmitCallback = Callable[[ResponseMap, AdaptiveMetadata], Union[None, Awaitable[None]]]
SaveDraftCallback = Callable[[ResponseMap], Union[None, Awaitable[None]]]


def invoke(callback: Optional[Callable[..., Any]], *args: Any) -> Any:
    """
    Call a collaborator and wait for it.

    Plain callables run directly. Coroutine functions (or callables returning
    an awaitable) are driven to completion on a private event loop, so the
    flow controller itself stays synchronous. Exceptions propagate.
    """
    if callback is None:
        return None

    result = callback(*args)
    if not inspect.isawaitable(result):
        return result

    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(result)
    finally:
        loop.close()
