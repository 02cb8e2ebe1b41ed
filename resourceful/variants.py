"""
Handler variants

A variant is the set of capabilities the ActionPipeline is parameterized with,
there are five of them:

PLAIN
    independent resource, addressed by its own route key
SINGULAR
    independent singular resource without a key in the url (e.g. the actor's account),
    found through the handler's `find_singleton`
NESTED
    many children per parent, looked up inside the parent's collection
NESTED_SINGULAR
    exactly one child per parent, `show` redirects to the existing child or to the `new` form
NESTED_WEAK
    the resource is the parent itself, edited through another route name

Every capability is a plain function taking the pipeline and the request context.
"""
from dataclasses import dataclass
from typing import Callable, Optional
from .identity import Cardinality
from .policy import DESTROY, EDIT, SHOW, UPDATE

MEMBER_ACTIONS = frozenset((SHOW, EDIT, UPDATE, DESTROY))


@dataclass(frozen=True)
class Variant:
    name: str
    cardinality: Cardinality
    nested: bool
    is_member: Callable[[str], bool]
    find_resource: Callable
    build_resource: Callable
    default_attributes: Callable
    show_redirect: Optional[Callable] = None
    params_required: bool = True

    def __repr__(self):
        return f"<Variant {self.name}>"


def assign(resource, attributes: dict):
    """
    Merge (already allow-listed) attributes into the resource
    """
    for key, value in attributes.items():
        setattr(resource, key, value)
    return resource


#
# member classification
#
def member_action(action):
    return action in MEMBER_ACTIONS


def always_member(action):
    return True


#
# resource lookup
#
def find_in_policy_scope(pipeline, context):
    handler = pipeline.handler
    scope = pipeline.policy.scope(handler.model)
    return pipeline.locator.resolve_member(context, handler.descriptor, scope, handler.lookup_field)


def find_singleton(pipeline, context):
    return pipeline.handler.find_singleton(context.actor, pipeline.policy)


def find_in_parent_scope(pipeline, context):
    handler = pipeline.handler
    return pipeline.locator.resolve_member(context, handler.descriptor, pipeline.collection_scope(context), handler.lookup_field)


def find_first_in_parent_scope(pipeline, context):
    return pipeline.collection_scope(context).first()


def find_parent(pipeline, context):
    return context.parent.resource


#
# construction
#
def build_instance(pipeline, context, attributes):
    return pipeline.handler.model(**attributes)


def build_from_parent(pipeline, context, attributes):
    return assign(context.parent.resource, attributes)


#
# default attributes hooks
#
def stamp_owner(pipeline, context, resource):
    """
    Set the owning actor (`owner_attribute`) on models that have one, an existing owner is kept
    """
    attr = pipeline.handler.owner_attribute
    if not attr or context.actor is None or not hasattr(type(resource), attr):
        return resource
    if getattr(resource, attr, None) is None:
        setattr(resource, attr, context.actor)
    return resource


def stamp_parent(pipeline, context, resource):
    """
    Link the child to the parent: through the foreign key column if the model
    has one, through a relationship attribute named after the parent otherwise
    """
    stamp_owner(pipeline, context, resource)
    parent = context.parent
    if hasattr(type(resource), parent.descriptor.foreign_key):
        setattr(resource, parent.descriptor.foreign_key, pipeline.store.key_of(parent.resource))
    elif hasattr(type(resource), parent.descriptor.singular_name):
        setattr(resource, parent.descriptor.singular_name, parent.resource)
    return resource


def keep_parent(pipeline, context, resource):
    return resource


#
# redirects
#
def redirect_to_existing_or_new(pipeline, context):
    """
    :return: url of the existing child, or of the form creating it.
        None if no other route serves the existing child, `show` renders it then
    """
    handler = pipeline.handler
    existing = context.resource(lambda: find_first_in_parent_scope(pipeline, context))
    if existing is not None:
        return handler.canonical_url(context, existing)
    return handler.new_resource_url(context)


PLAIN = Variant(
    name="plain",
    cardinality=Cardinality.PLURAL,
    nested=False,
    is_member=member_action,
    find_resource=find_in_policy_scope,
    build_resource=build_instance,
    default_attributes=stamp_owner,
)

SINGULAR = Variant(
    name="singular",
    cardinality=Cardinality.SINGULAR,
    nested=False,
    is_member=member_action,
    find_resource=find_singleton,
    build_resource=build_instance,
    default_attributes=stamp_owner,
)

NESTED = Variant(
    name="nested",
    cardinality=Cardinality.PLURAL,
    nested=True,
    is_member=member_action,
    find_resource=find_in_parent_scope,
    build_resource=build_instance,
    default_attributes=stamp_parent,
    params_required=False,
)

NESTED_SINGULAR = Variant(
    name="nested_singular",
    cardinality=Cardinality.SINGULAR,
    nested=True,
    is_member=member_action,
    find_resource=find_first_in_parent_scope,
    build_resource=build_instance,
    default_attributes=stamp_parent,
    show_redirect=redirect_to_existing_or_new,
    params_required=False,
)

NESTED_WEAK = Variant(
    name="nested_weak",
    cardinality=Cardinality.SINGULAR,
    nested=True,
    is_member=always_member,
    find_resource=find_parent,
    build_resource=build_from_parent,
    default_attributes=keep_parent,
    params_required=False,
)
