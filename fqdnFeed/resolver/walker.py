"""Walk a configuration tree and expand its FQDN request leaves."""
from __future__ import annotations

import asyncio
import copy
import re
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Iterable, List

from fqdnFeed.resolver.models import ResolvedAddresses, ResponseBuffer

# One or more "label." groups followed by a final label
FQDN_PATTERN = re.compile(r"^([a-z0-9_-]+\.)+[a-z0-9_-]+$", re.IGNORECASE)

ResolveFn = Callable[[str, int, int], Awaitable[ResolvedAddresses]]


class NodeKind(Enum):
    REQUEST = "request"
    OBJECT = "object"
    ARRAY = "array"
    SCALAR = "scalar"


def is_request(node: Any) -> bool:
    """A mapping whose ``fqdn`` value is a string shaped like a domain name."""
    if not isinstance(node, dict):
        return False
    fqdn = node.get("fqdn")
    return isinstance(fqdn, str) and FQDN_PATTERN.match(fqdn) is not None


def classify_node(node: Any) -> NodeKind:
    if is_request(node):
        return NodeKind.REQUEST
    if isinstance(node, dict):
        return NodeKind.OBJECT
    if isinstance(node, list):
        return NodeKind.ARRAY
    return NodeKind.SCALAR


class ConfigWalker:
    """Replace request leaves with resolved addresses, siblings in parallel.

    ``walk`` rewrites the tree it is given in place; callers pass a copy
    (see ``walk_copy``). Every resolved leaf is also appended to ``buffer``.
    """

    def __init__(self, resolve: ResolveFn, buffer: ResponseBuffer):
        self._resolve = resolve
        self.buffer = buffer

    async def walk_copy(self, document: Any, span: int, now: int) -> Any:
        return await self.walk(copy.deepcopy(document), span, now)

    async def walk(self, node: Any, span: int, now: int) -> Any:
        kind = classify_node(node)
        if kind is NodeKind.REQUEST:
            return await self._expand(node["fqdn"], span, now)
        if kind is NodeKind.OBJECT:
            return await self._walk_object(node, span, now)
        if kind is NodeKind.ARRAY:
            return await self._walk_array(node, span, now)
        return node

    async def _expand(self, fqdn: str, span: int, now: int) -> Dict[str, List[str]]:
        resolved = await self._resolve(fqdn, span, now)
        self.buffer.append(resolved)
        return resolved.to_document()

    async def _walk_object(self, node: Dict[str, Any], span: int, now: int) -> Dict[str, Any]:
        keys = list(node)
        results = await join_all(self.walk(node[key], span, now) for key in keys)
        for key, value in zip(keys, results):
            node[key] = value
        return node

    async def _walk_array(self, node: List[Any], span: int, now: int) -> List[Any]:
        node[:] = await join_all(self.walk(item, span, now) for item in node)
        return node


async def join_all(coros: Iterable[Awaitable[Any]]) -> List[Any]:
    """Run ``coros`` as sibling tasks and return their results in order.

    The first failure cancels the remaining siblings, waits for them to finish,
    then re-raises. Cancelling the caller cancels every sibling the same way.
    """
    tasks = [asyncio.ensure_future(coro) for coro in coros]
    if not tasks:
        return []
    try:
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        failures = [task.exception() for task in tasks if task in done and not task.cancelled()]
        for exc in failures:
            if exc is not None:
                raise exc
        return [task.result() for task in tasks]
    finally:
        pending = [task for task in tasks if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
