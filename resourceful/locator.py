"""
Resource Locator: turn request parameters into the addressed resource or collection

Lookups always happen inside a scope, an entity that exists but isn't in the
scope is reported the same way as a missing one (404).
"""
import resourceful
from .context import ParentContext, RequestContext
from .errors import NotFoundError
from .identity import ResourceDescriptor
from .persistence import SQLAlchemyStore


class ResourceLocator:
    def __init__(self, store: SQLAlchemyStore = None):
        self.store = store or SQLAlchemyStore()

    def resolve_member(self, context: RequestContext, descriptor: ResourceDescriptor, scope, field: str = None):
        """
        :param context: request context holding the params
        :param descriptor: descriptor of the addressed kind, `route_key` names the param
        :param scope: query the resource is searched in
        :param field: lookup attribute, primary key by default
        :return: entity
        :raises NotFoundError: missing param or no match in the scope
        """
        key = context.params.get(descriptor.route_key)
        if key is None or key == "":
            raise NotFoundError(f'Missing "{descriptor.route_key}" parameter')
        resource = self.store.find(scope, key, field)
        resourceful.log.debug(f"located {descriptor.singular_name} {key}")
        return resource

    def resolve_collection(self, context: RequestContext, descriptor: ResourceDescriptor, base_scope, parent: ParentContext = None):
        """
        :param base_scope: the (policy) scope of the kind
        :param parent: narrow to the children of this parent, the context's parent by default
        :return: query
        """
        if parent is None:
            parent = context.parent
        if parent is None:
            return base_scope
        fk_value = self.store.key_of(parent.resource)
        resourceful.log.debug(f"{context.action}: {descriptor.plural_name} of {parent.descriptor.singular_name} {fk_value}")
        return self.store.scope(base_scope, **{parent.descriptor.foreign_key: fk_value})

    @staticmethod
    def override_member(context: RequestContext, descriptor: ResourceDescriptor, resource):
        """
        Replace the memoized resource and refresh its rendering alias
        """
        context.override_resource(resource)
        context.assigns[descriptor.singular_name] = resource
        return resource
