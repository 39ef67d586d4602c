"""
Plugin registration objects

A plugin bundles actions (request handlers the agent can trigger from a chat
message) and long-running services. Messages are plain dicts with at least a
``text`` key; actions may read extra keys such as ``token_address`` or
``user``.
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

Message = Dict[str, Any]


@dataclass
class ActionResult:
    """What an action hands back to the agent"""
    success: bool
    text: str
    tweets: List[str] = field(default_factory=list)
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Action:
    name: str
    description: str
    validate: Callable[..., Awaitable[bool]]
    handler: Callable[..., Awaitable[ActionResult]]
    similes: List[str] = field(default_factory=list)
    examples: List[List[Message]] = field(default_factory=list)

    def matches(self, name: str) -> bool:
        """True for the action name or one of its similes"""
        name = name.upper()
        return name == self.name or name in self.similes


@dataclass
class Plugin:
    name: str
    description: str
    actions: List[Action] = field(default_factory=list)
    services: List[Any] = field(default_factory=list)

    def get_action(self, name: str) -> Optional[Action]:
        for action in self.actions:
            if action.matches(name):
                return action
        return None
