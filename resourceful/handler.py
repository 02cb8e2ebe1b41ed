# Resource handlers
#
# A ResourceHandler is a flask View configured with class attributes:
#
#   @handlers.register("blogs/posts")
#   class PostsHandler(ResourceHandler):
#       model = Post
#       parent_model = Blog
#       variant = NESTED
#       permitted = ["title", "body"]
#       policy_class = PostPolicy
#
# The route table (routing.RouteMapper) instantiates the views with the
# actions of the matched url rule, every request runs the ActionPipeline.
#
from functools import wraps
from flask import current_app, g, request, url_for
from flask.views import View
from sqlalchemy import inspect as sqla_inspect
from werkzeug.exceptions import HTTPException, MethodNotAllowed
import resourceful
from . import handoff
from .config import get_config
from .context import RequestContext
from .errors import ConfigurationError, NotFoundError, ResourceError
from .identity import describe
from .locator import ResourceLocator
from .params import collect_params
from .persistence import SQLAlchemyStore
from .pipeline import ActionPipeline
from .policy import EDIT, INDEX, NEW, SHOW, Policy
from .rendering import Renderer
from .routing import OVERRIDABLE_METHODS
from .util import classproperty
from .variants import NESTED_WEAK, PLAIN, Variant


def action_decorator(fun):
    """Decorator for the resource actions
        - commit the database when the action succeeded
        - rollback when it failed
        - convert ResourceError exceptions to a JSON error response

    :param fun: dispatch_request
    :return: wrapped fun
    """

    @wraps(fun)
    def action_wrapper(self, *args, **kwargs):
        session = self.store.session
        try:
            result = fun(self, *args, **kwargs)
        except ResourceError as exc:
            session.rollback()
            resourceful.log.info(f"{type(exc).__name__} ({exc.status_code}): {exc.message}")
            return self.renderer.error(exc)
        except HTTPException:
            session.rollback()
            raise
        except Exception as exc:
            session.rollback()
            resourceful.log.exception(exc)
            raise

        if self.outcome is not None and self.outcome.failed:
            session.rollback()
        else:
            session.commit()
        return result

    return action_wrapper


class ResourceHandler(View):
    """
    Base class of the resource handlers

    model: model class of the resource
    parent_model: model class of the parent (nested variants)
    variant: PLAIN, SINGULAR, NESTED, NESTED_SINGULAR or NESTED_WEAK
    permitted: attribute names that may be assigned from the request params
    policy_class: Policy subclass authorizing the resource
    parent_policy_class: Policy subclass authorizing the parent, defaults to the policy of the parent's handler
    owner_attribute: model attribute set to the actor on new resources
    lookup_field: attribute matched against the route key, the primary key by default
    parent_lookup_field: same, for the parent
    order_by: collection ordering (attribute names, prefix with "-" for descending)
    renderer: Renderer instance
    """

    abstract = True
    model = None
    parent_model = None
    variant = PLAIN
    permitted = ()
    policy_class = Policy
    parent_policy_class = None
    owner_attribute = "user"
    lookup_field = None
    parent_lookup_field = None
    order_by = None
    renderer = Renderer()
    store = SQLAlchemyStore()

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        if cls.__dict__.get("abstract", False):
            return
        if not isinstance(cls.variant, Variant):
            raise ConfigurationError(f"{cls.__name__}.variant should be a Variant, not {cls.variant!r}")
        if cls.variant.nested and cls.parent_model is None:
            raise ConfigurationError(f"{cls.__name__}: nested handlers require a parent_model")
        if cls.variant is NESTED_WEAK and cls.model is None:
            cls.model = cls.parent_model
        if cls.model is None:
            raise ConfigurationError(f"{cls.__name__}: no model specified")
        describe(cls.model)

    def __init__(self, actions=None, spec=None):
        """
        :param actions: dict mapping HTTP methods to action names for the matched url rule
        :param spec: RouteSpec the url rule was generated from
        """
        self.actions = dict(actions or {})
        self.spec = spec
        self.context = None
        self.outcome = None
        self.locator = ResourceLocator(self.store)
        self.policy = None
        self.parent_policy = None

    @classproperty
    def descriptor(cls):
        return describe(cls.model)

    @classproperty
    def parent_descriptor(cls):
        return describe(cls.parent_model) if cls.parent_model is not None else None

    @property
    def registry(self):
        return current_app.extensions["resourceful"]["handlers"]

    @property
    def routes(self):
        return current_app.extensions["resourceful"]["routes"]

    def action_for(self, method: str) -> str:
        """
        :return: the action handling the HTTP method, HTML forms use "_method" for PATCH/PUT/DELETE
        """
        if method == "POST":
            override = str(request.form.get("_method", "")).upper()
            if override in OVERRIDABLE_METHODS:
                method = override
        action = self.actions.get(method)
        if action is None:
            raise MethodNotAllowed(valid_methods=list(self.actions))
        return action

    def current_actor(self):
        return g.get(get_config("ACTOR_ATTRIBUTE"))

    def get_parent_policy_class(self):
        if self.parent_policy_class is not None:
            return self.parent_policy_class
        parent_handler = self.registry.for_model(self.parent_model) if self.parent_model is not None else None
        if parent_handler is not None and parent_handler is not type(self):
            return parent_handler.policy_class
        return self.policy_class

    @action_decorator
    def dispatch_request(self, **view_args):
        action = self.action_for(request.method)
        actor = self.current_actor()
        self.context = RequestContext(action, collect_params(request, view_args), actor)
        self.policy = self.policy_class(actor)
        self.parent_policy = self.get_parent_policy_class()(actor)
        resourceful.log.debug(f"{type(self).__name__}.{action} {view_args}")
        self.outcome = ActionPipeline(self).run(self.context)
        return self.renderer.respond(self.outcome, self.context, self)

    #
    # lookups
    #
    @classmethod
    def find_singleton(cls, actor, policy):
        """
        :return: the resource of a singular route without a key in the url: the one owned by
            the actor (`owner_attribute`) within the policy scope, None if there is none
        """
        scope = policy.scope(cls.model)
        if cls.owner_attribute and hasattr(cls.model, cls.owner_attribute):
            scope = scope.filter_by(**{cls.owner_attribute: actor})
        return scope.first()

    def find_parent(self, context):
        """
        :return: the parent found by its route key (unscoped), or the parent handler's
            singleton when the parent route is singular
        :raises NotFoundError: no such parent
        """
        descriptor = self.parent_descriptor
        key = context.params.get(descriptor.route_key)
        if key is not None:
            return self.store.find(self.store.query(self.parent_model), key, self.parent_lookup_field)
        if self.spec is not None and self.spec.nested and self.spec.parent_route_key is None:
            parent_handler = self.registry.for_model(self.parent_model)
            parent = parent_handler.find_singleton(context.actor, self.parent_policy) if parent_handler is not None else None
            if parent is not None:
                return parent
            raise NotFoundError(f"No {descriptor.singular_name} found")
        raise NotFoundError(f'Missing "{descriptor.route_key}" parameter')

    def ordering(self):
        """
        :return: order_by clauses of the collection, ascending primary key by default
        """
        if not self.order_by:
            return list(sqla_inspect(self.model).primary_key)
        clauses = []
        for name in self.order_by:
            if not isinstance(name, str):
                clauses.append(name)
            elif name.startswith("-"):
                clauses.append(getattr(self.model, name[1:]).desc())
            else:
                clauses.append(getattr(self.model, name))
        return clauses

    #
    # urls
    #
    def url_for_action(self, context, action, resource=None):
        """
        :param action: action of this handler's route spec
        :param resource: fills the route key of member urls
        :return: url or None if the route spec doesn't expose the action
        """
        if self.spec is None:
            return None
        rule = self.spec.rule_for(action)
        if rule is None:
            return None
        values = {}
        for var in rule.variables:
            if resource is not None and var == self.descriptor.route_key:
                values[var] = self.store.key_of(resource, self.lookup_field)
            elif var in context.params:
                values[var] = context.params[var]
        return url_for(rule.endpoint, **values)

    def canonical_url(self, context, resource):
        """
        :return: url showing (or editing) the resource on its own, None if nothing is routed for it
        """
        routes = self.routes
        location = routes.locate(resource) if routes is not None else None
        if location is None and self.spec is not None and not self.spec.singular:
            location = self.url_for_action(context, SHOW, resource)
        if location is None:
            location = self.url_for_action(context, EDIT, resource)
        return location

    def resource_url(self, context, resource):
        """
        :return: canonical url of the resource, singular routes fall back to their own show url
        """
        location = self.canonical_url(context, resource)
        if location is None and self.spec is not None and self.spec.singular:
            location = self.url_for_action(context, SHOW, resource)
        return location or "/"

    def new_resource_url(self, context):
        return self.url_for_action(context, NEW) or "/"

    def create_redirect_url(self, context):
        return self.resource_url(context, context.current_resource)

    def update_redirect_url(self, context):
        return self.resource_url(context, context.current_resource)

    def destroy_redirect_url(self, context):
        location = self.url_for_action(context, INDEX)
        if location is None and context.parent is not None and self.variant is not NESTED_WEAK:
            location = self.resource_url(context, context.parent.resource)
        return location or "/"

    #
    # notices
    #
    def create_notice(self):
        return f"{self.descriptor.display_name} created"

    def update_notice(self):
        return f"{self.descriptor.display_name} updated"

    def destroy_notice(self):
        return f"{self.descriptor.display_name} deleted"

    #
    # handoff
    #
    def created_resource(self, context):
        """
        :return: the resource created by the previous request, if any
        """
        return handoff.resolve(handoff.CREATED, context, self.registry)

    def updated_resource(self, context):
        return handoff.resolve(handoff.UPDATED, context, self.registry)


class HandlerRegistry:
    """
    Module qualified paths ("blogs/posts") to handler classes,
    the route table dispatches into the registered handlers
    """

    def __init__(self):
        self._handlers = {}
        self._models = {}

    def register(self, path: str):
        """
        Class decorator registering a handler under the path
        """

        def decorator(handler_cls):
            self.add(path, handler_cls)
            return handler_cls

        return decorator

    def add(self, path: str, handler_cls) -> None:
        if not (isinstance(handler_cls, type) and issubclass(handler_cls, ResourceHandler)):
            raise ConfigurationError(f'"{path}": {handler_cls!r} is not a ResourceHandler')
        if handler_cls.__dict__.get("abstract", False):
            raise ConfigurationError(f'"{path}": {handler_cls.__name__} is abstract')
        path = path.strip("/")
        if path in self._handlers:
            raise ConfigurationError(f'Handler path "{path}" already registered by {self._handlers[path].__name__}')
        self._handlers[path] = handler_cls
        current = self._models.get(handler_cls.model)
        # weak handlers edit another kind, they only serve it when nothing else does
        if current is None or (current.variant is NESTED_WEAK and handler_cls.variant is not NESTED_WEAK):
            self._models[handler_cls.model] = handler_cls
        resourceful.log.debug(f"registered {handler_cls.__name__} as {path}")

    def get(self, path: str):
        return self._handlers.get(path.strip("/"))

    def for_model(self, model):
        return self._models.get(model)

    def for_resource(self, singular_name: str):
        """
        :return: the handler serving the resource kind named `singular_name`
        """
        for handler_cls in self._models.values():
            if handler_cls.descriptor.singular_name == singular_name:
                return handler_cls
        return None

    def __contains__(self, path):
        return self.get(path) is not None

    def __iter__(self):
        return iter(self._handlers.items())

    def __len__(self):
        return len(self._handlers)


handlers = HandlerRegistry()
