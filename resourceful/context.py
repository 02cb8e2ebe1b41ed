# Per-request state of a resource action
#
# The context is created by the handler for every request and dropped afterwards,
# nothing is shared between requests.
#
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Optional
from .identity import ResourceDescriptor

_UNSET = object()


class State(Enum):
    INIT = "init"
    PARENT_RESOLVED = "parent_resolved"
    AUTHORIZED = "authorized"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class ParentContext:
    """
    The resolved (and authorized) parent of a nested request
    """

    resource: Any
    descriptor: ResourceDescriptor


@dataclass
class RequestContext:
    """
    :param action: one of index, show, new, create, edit, update, destroy
    :param params: request parameters (path parameters included)
    :param actor: the authenticated principal, may be None
    :param member: whether the request addresses a single resource
    """

    action: str
    params: Dict[str, Any] = field(default_factory=dict)
    actor: Any = None
    member: bool = False
    state: State = State.INIT
    parent: Optional[ParentContext] = None
    assigns: Dict[str, Any] = field(default_factory=dict)
    errors: Dict[str, list] = field(default_factory=dict)
    handoffs: Dict[str, Any] = field(default_factory=dict)
    _resource: Any = field(default=_UNSET, repr=False)
    _collection: Any = field(default=_UNSET, repr=False)
    _overridden: bool = field(default=False, repr=False)

    def resource(self, resolver: Callable[[], Any]) -> Any:
        """
        :param resolver: called on the first access only
        :return: the memoized resource (or the override)
        """
        if self._resource is _UNSET:
            self._resource = resolver()
        return self._resource

    @property
    def current_resource(self) -> Any:
        """
        :return: the resource resolved so far, None if it hasn't been resolved
        """
        return None if self._resource is _UNSET else self._resource

    def override_resource(self, value: Any) -> Any:
        """
        Replace the memoized resource, e.g. with a freshly built entity
        This may happen once per request
        """
        if self._overridden:
            raise RuntimeError(f"{self.action}: the resource was already overridden")
        self._overridden = True
        self._resource = value
        return value

    def collection(self, resolver: Callable[[], Any]) -> Any:
        if self._collection is _UNSET:
            self._collection = resolver()
        return self._collection

    def transition(self, state: State) -> None:
        self.state = state
