# Action Pipeline
#
# One request runs through:
#   1. parent resolution and the parent "show" check (nested variants)
#   2. member/collection classification, resource resolution and authorization
#   3. the action body, which returns an Outcome for the renderer
#
# NotFoundError and UnAuthorizedError are raised and short-circuit the
# pipeline, a ValidationError during create/update becomes an "invalid" outcome.
#
from dataclasses import dataclass, field
from typing import Optional
import resourceful
from . import handoff
from .context import ParentContext, RequestContext, State
from .errors import NotFoundError, ValidationError
from .params import permit
from .policy import CREATE, DESTROY, EDIT, INDEX, NEW, SHOW, UPDATE, authorize
from .variants import assign

RENDER = "render"
INVALID = "invalid"
REDIRECT = "redirect"


@dataclass
class Outcome:
    """
    Result of an action:
    render: render the `action` view with `status`
    invalid: re-render the `action` form with the field `errors`
    redirect: redirect to `location` with the `notice`
    """

    kind: str
    action: str
    status: int = 200
    location: Optional[str] = None
    notice: Optional[str] = None
    errors: dict = field(default_factory=dict)

    @property
    def failed(self) -> bool:
        return self.kind == INVALID

    @classmethod
    def render(cls, action, status=200):
        return cls(RENDER, action, status)

    @classmethod
    def invalid(cls, action, errors, status=422):
        return cls(INVALID, action, status, errors=errors)

    @classmethod
    def redirect(cls, action, location, notice=None, status=303):
        return cls(REDIRECT, action, status, location=location, notice=notice)


class ActionPipeline:
    """
    Runs the resource actions of a handler
    :param handler: ResourceHandler instance, it provides the model, variant, policies and url hooks
    """

    def __init__(self, handler):
        self.handler = handler
        self.variant = handler.variant
        self.locator = handler.locator
        self.store = handler.store
        self.policy = handler.policy
        self.parent_policy = handler.parent_policy

    def run(self, context: RequestContext) -> Outcome:
        try:
            if self.variant.nested:
                self.resolve_parent(context)
            context.transition(State.PARENT_RESOLVED)

            if context.action == SHOW and self.variant.show_redirect is not None:
                location = self.variant.show_redirect(self, context)
                if location is not None:
                    # redirecting show: the target routes authorize on their own
                    context.transition(State.AUTHORIZED)
                    context.transition(State.EXECUTING)
                    outcome = Outcome.redirect(SHOW, location, status=302)
                    context.transition(State.COMPLETED)
                    return outcome

            context.member = self.variant.is_member(context.action)
            if context.member:
                resource = self.resource(context)
                if context.action not in (NEW, CREATE):
                    authorize(self.policy, context.action, resource)
            elif context.action == INDEX:
                self.collection(context)
            context.transition(State.AUTHORIZED)

            context.transition(State.EXECUTING)
            action = getattr(self, context.action)
            outcome = action(context)
            context.transition(State.COMPLETED)
            return outcome
        except Exception:
            context.transition(State.FAILED)
            raise

    #
    # Step 1: parent
    #
    def resolve_parent(self, context: RequestContext) -> ParentContext:
        """
        Find the parent (handler.find_parent) and check the actor may see it
        :raises NotFoundError: the parent doesn't exist
        :raises UnAuthorizedError: the actor may not "show" the parent
        """
        if context.parent is not None:
            return context.parent
        descriptor = self.handler.parent_descriptor
        parent = self.handler.find_parent(context)
        authorize(self.parent_policy, SHOW, parent)
        context.parent = ParentContext(parent, descriptor)
        context.assigns[descriptor.singular_name] = parent
        return context.parent

    #
    # Step 2: resource and collection
    #
    def resource(self, context: RequestContext):
        """
        :return: the memoized resource of a member request
        :raises NotFoundError: nothing to operate on
        """
        resource = context.resource(lambda: self.variant.find_resource(self, context))
        if resource is None:
            raise NotFoundError(f"No {self.handler.descriptor.singular_name} found")
        context.assigns.setdefault(self.handler.descriptor.singular_name, resource)
        return resource

    def collection_scope(self, context: RequestContext):
        """
        :return: the policy scope narrowed to the parent's children
        """
        handler = self.handler
        return self.locator.resolve_collection(context, handler.descriptor, self.policy.scope(handler.model), context.parent)

    def collection(self, context: RequestContext):
        """
        :return: memoized, ordered collection query
        """

        def resolve():
            query = self.collection_scope(context)
            return query.order_by(*self.handler.ordering())

        collection = context.collection(resolve)
        context.assigns[self.handler.descriptor.plural_name] = collection
        return collection

    #
    # Step 3: actions
    #
    def index(self, context):
        return Outcome.render(INDEX)

    def show(self, context):
        return Outcome.render(SHOW)

    def edit(self, context):
        return Outcome.render(EDIT)

    def resource_params(self, context: RequestContext) -> dict:
        handler = self.handler
        return permit(context.params, handler.descriptor.singular_name, handler.permitted, self.variant.params_required)

    def build(self, context: RequestContext, attributes: dict):
        resource = self.variant.build_resource(self, context, attributes)
        self.locator.override_member(context, self.handler.descriptor, resource)
        self.variant.default_attributes(self, context, resource)
        return resource

    def new(self, context):
        resource = self.build(context, {})
        authorize(self.policy, NEW, resource)
        return Outcome.render(NEW)

    def create(self, context):
        resource = self.build(context, self.resource_params(context))
        authorize(self.policy, CREATE, resource)
        try:
            self.store.save(resource)
        except ValidationError as exc:
            context.errors = exc.errors
            return Outcome.invalid(NEW, exc.errors, exc.status_code)
        handler = self.handler
        handoff.put(handoff.CREATED, handler.descriptor, self.store.key_of(resource))
        resourceful.log.info(f"{handler.descriptor.singular_name} {self.store.key_of(resource)} created")
        return Outcome.redirect(CREATE, handler.create_redirect_url(context), handler.create_notice())

    def update(self, context):
        resource = self.resource(context)
        assign(resource, self.resource_params(context))
        self.variant.default_attributes(self, context, resource)
        authorize(self.policy, UPDATE, resource)
        try:
            self.store.save(resource)
        except ValidationError as exc:
            context.errors = exc.errors
            return Outcome.invalid(EDIT, exc.errors, exc.status_code)
        handler = self.handler
        handoff.put(handoff.UPDATED, handler.descriptor, self.store.key_of(resource))
        return Outcome.redirect(UPDATE, handler.update_redirect_url(context), handler.update_notice())

    def destroy(self, context):
        handler = self.handler
        resource = self.resource(context)
        location = handler.destroy_redirect_url(context)
        self.store.destroy(resource)
        return Outcome.redirect(DESTROY, location, handler.destroy_notice())
