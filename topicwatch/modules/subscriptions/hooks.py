"""
Extension Points
================

A fixed set of named actions and filters. Actions are fired by the host
forum when something happens to a reply; filters let other code rewrite the
notification before it is sent.

    hooks.add_filter('mail_subject', lambda subject, reply_id, topic_id: subject.upper())
    hooks.do_action('reply_published', event)
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

ACTIONS = (
    'reply_created',      # (ReplyEvent, form)
    'reply_edited',       # (ReplyEvent, form)
    'reply_published',    # (ReplyEvent,)
)

FILTERS = (
    'mail_subject',       # (subject, reply_id, topic_id)
    'mail_message',       # (message, reply_id, topic_id)
    'mail_headers',       # (headers,)
    'mail_to',            # (to_address,)
    'mail_from',          # (from_address,)
)

DEFAULT_PRIORITY = 10


@dataclass
class ReplyEvent:
    """What the host forum knows about a reply when it fires an action"""
    reply_id: int
    topic_id: int
    forum_id: int = 0
    anonymous_email: Optional[str] = None
    author_id: int = 0
    is_edit: bool = False


class HookRegistry:

    def __init__(self):
        self._callbacks: Dict[str, List[Tuple[int, int, Callable]]] = {
            name: [] for name in ACTIONS + FILTERS
        }
        self._counter = 0

    def _register(self, kind, names, name, callback, priority):
        if name not in names:
            raise ValueError(f"Unknown {kind} '{name}'. Known: {', '.join(names)}")
        if not callable(callback):
            raise TypeError(f"Callback for '{name}' must be callable")
        self._counter += 1
        self._callbacks[name].append((priority, self._counter, callback))
        self._callbacks[name].sort(key=lambda entry: (entry[0], entry[1]))
        return callback

    def add_action(self, name: str, callback: Callable, priority: int = DEFAULT_PRIORITY):
        return self._register('action', ACTIONS, name, callback, priority)

    def add_filter(self, name: str, callback: Callable, priority: int = DEFAULT_PRIORITY):
        return self._register('filter', FILTERS, name, callback, priority)

    def remove(self, name: str, callback: Callable) -> bool:
        entries = self._callbacks.get(name, [])
        for entry in entries:
            if entry[2] is callback:
                entries.remove(entry)
                return True
        return False

    def callbacks(self, name: str) -> List[Callable]:
        if name not in self._callbacks:
            raise ValueError(f"Unknown hook '{name}'")
        return [entry[2] for entry in self._callbacks[name]]

    def do_action(self, name: str, *args) -> None:
        if name not in ACTIONS:
            raise ValueError(f"Unknown action '{name}'")
        for callback in self.callbacks(name):
            callback(*args)

    def apply_filters(self, name: str, value: Any, *args) -> Any:
        """Pass value through every filter registered under name, in order"""
        if name not in FILTERS:
            raise ValueError(f"Unknown filter '{name}'")
        for callback in self.callbacks(name):
            value = callback(value, *args)
        return value

    def action(self, name: str, priority: int = DEFAULT_PRIORITY):
        """Decorator form of add_action"""
        def decorator(f):
            return self.add_action(name, f, priority)
        return decorator

    def filter(self, name: str, priority: int = DEFAULT_PRIORITY):
        """Decorator form of add_filter"""
        def decorator(f):
            return self.add_filter(name, f, priority)
        return decorator
