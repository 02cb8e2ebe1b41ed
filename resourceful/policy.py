"""
Authorization policies

A policy answers whether the actor may exercise a capability on a target and
which entities of a kind the actor may see. Capabilities are named after the
actions: index, show, new, create, edit, update, destroy.

Example:

    class PostPolicy(Policy):
        def can_update(self, post):
            return post.user == self.actor

        def scope(self, model):
            return super().scope(model).filter_by(published=True)
"""
import resourceful
from .errors import UnAuthorizedError
from .persistence import SQLAlchemyStore

INDEX = "index"
SHOW = "show"
NEW = "new"
CREATE = "create"
EDIT = "edit"
UPDATE = "update"
DESTROY = "destroy"


class Policy:
    """
    Deny-by-default policy, subclasses implement `can_<capability>(target)`
    """

    allow_by_default = False
    store = SQLAlchemyStore()

    def __init__(self, actor=None):
        self.actor = actor

    def check(self, capability: str, target) -> bool:
        """
        :param capability: action name
        :param target: entity (or model class for collection capabilities)
        :return: True if the actor may exercise the capability on the target
        """
        method = getattr(self, f"can_{capability}", None)
        if method is None:
            return bool(self.allow_by_default)
        return bool(method(target))

    def can_new(self, target):
        return self.check(CREATE, target)

    def can_edit(self, target):
        return self.check(UPDATE, target)

    def scope(self, model):
        """
        :param model: model class
        :return: query of the entities visible to the actor
        """
        return self.store.query(model)

    def __repr__(self):
        return f"<{self.__class__.__name__} actor={self.actor!r}>"


class AllowAll(Policy):
    """
    Grants every capability and sees every entity
    """

    allow_by_default = True


def authorize(policy: Policy, capability: str, target) -> None:
    """
    :raises UnAuthorizedError: if the policy denies the capability
    """
    if policy.check(capability, target):
        return
    resourceful.log.debug(f"{policy} denied {capability} on {target!r}")
    raise UnAuthorizedError(f'"{capability}" not allowed on {target!r}')
