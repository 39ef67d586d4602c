"""Agent plugins: the launch monitor and the token security actions."""

from .base import Action, ActionResult, Plugin
from .monitor_plugin import create_monitor_plugin
from .security_plugin import security_plugin

__all__ = [
    'Action',
    'ActionResult',
    'Plugin',
    'create_monitor_plugin',
    'security_plugin',
]
