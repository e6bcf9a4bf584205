"""
Graph — nodnod computation graphs compiled once, run per call.

    from cartcore import graph as G

    @G.node
    class CartNode:
        @classmethod
        async def __compose__(cls, spec: ReconcileSpec) -> "CartNode":
            return cls(await spec.cart.get_state())

    reconcile = G.graph(FinalResultNode)   # dependencies discovered here
    final = await reconcile(spec)          # fresh scope per run

Inputs are injected by their runtime type, so each input type may be
passed at most once per run.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, cast

from nodnod import EventLoopAgent, Node, Scope, Value
from nodnod import scalar_node as node


class GraphRunError(LookupError):
    """The graph finished without producing its target node."""


@dataclass(slots=True, frozen=True)
class Compiled[T]:
    """Graph bound to one target node type."""

    target: type[T]
    agent: EventLoopAgent

    async def __call__(self, *inputs: object) -> T:
        async with Scope(detail=f"run:{self.target.__name__}") as scope:
            seen: set[type[Any]] = set()
            for value in inputs:
                typ = type(value)
                if typ in seen:
                    raise ValueError(f"{typ.__name__} injected twice")
                seen.add(typ)
                scope.push(Value(typ, value))

            await self.agent.run(scope, {})

            produced = scope.get(self.target)
            if produced is None:
                raise GraphRunError(f"{self.target.__name__} was not produced")
            return cast(T, produced.value)


def graph[T](target: type[T]) -> Compiled[T]:
    """Build the agent for `target` and everything it depends on."""
    agent = EventLoopAgent.build({cast(type[Node[Any, Any]], target)})
    return Compiled(target=target, agent=agent)


__all__ = (
    "node",
    "GraphRunError",
    "Compiled",
    "graph",
)
