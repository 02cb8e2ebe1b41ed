"""
Route declaration

The route table is declared once, at startup, with a small DSL:

    routes = RouteMapper()
    with routes.resources("blogs", only=["index", "show"]):
        routes.nest("posts")            # blogs/posts handler: new, create, show
        routes.nest("setting")          # singular, blogs/settings handler: new, create, show
        routes.edit("appearance")       # blogs/appearances handler: edit, update
    with routes.namespace("admin"):
        routes.resources("users")       # admin/users handler: all actions

Every call declares a RouteSpec and can be used as a context manager to
declare children. A child name in singular form declares a singular
resource (no index, no member key in the url), a plural name declares a
collection. Children dispatch into the handler registered under
"<parent module>/<parent plural>/<child plural>".

`RouteMapper.init_app` binds the RouteSpecs to the registered handlers and adds
the flask url rules.
"""
import re
from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional
from flask import url_for
import resourceful
from .errors import RouteConfigurationError
from .identity import Cardinality, ResourceDescriptor, describe_name
from .persistence import SQLAlchemyStore
from .policy import CREATE, DESTROY, EDIT, INDEX, NEW, SHOW, UPDATE
from .variants import NESTED_WEAK

PLURAL_ACTIONS = frozenset((INDEX, NEW, CREATE, SHOW, EDIT, UPDATE, DESTROY))
SINGULAR_ACTIONS = PLURAL_ACTIONS - {INDEX}

# default action sets of the nested operations, per cardinality
NEST_DEFAULTS = {
    Cardinality.PLURAL: PLURAL_ACTIONS - {INDEX, EDIT, UPDATE, DESTROY},
    Cardinality.SINGULAR: SINGULAR_ACTIONS - {EDIT, UPDATE, DESTROY},
}
CREATE_DEFAULTS = frozenset((NEW, CREATE))
EDIT_DEFAULTS = frozenset((EDIT, UPDATE))
SHOW_DEFAULTS = frozenset((SHOW,))
DESTROY_DEFAULTS = frozenset((DESTROY,))
LIST_DEFAULTS = frozenset((INDEX,))

OVERRIDABLE_METHODS = ("PATCH", "PUT", "DELETE")

_path_variable = re.compile(r"<(?:[^:<>]+:)?(\w+)>")


def _join(*parts, sep="_"):
    return sep.join(part for part in parts if part)


@dataclass(frozen=True)
class RouteRule:
    """
    One flask url rule: endpoint, path and the action of every HTTP method
    """

    endpoint: str
    path: str
    methods: Dict[str, str]

    @property
    def variables(self):
        return _path_variable.findall(self.path)

    @property
    def actions(self):
        return frozenset(self.methods.values())


@dataclass(frozen=True)
class RouteSpec:
    """
    A declared resource route: the actions it exposes and where they dispatch to
    """

    name: str
    descriptor: ResourceDescriptor
    actions: FrozenSet[str]
    module: str = ""
    path_prefix: str = ""
    name_prefix: str = ""
    parent: Optional[ResourceDescriptor] = None

    @property
    def cardinality(self) -> Cardinality:
        return self.descriptor.cardinality

    @property
    def singular(self) -> bool:
        return self.cardinality is Cardinality.SINGULAR

    @property
    def nested(self) -> bool:
        return self.parent is not None

    @property
    def parent_route_key(self) -> Optional[str]:
        """
        :return: route key of the parent, None if the parent is singular (it has no key in the url)
        """
        if self.parent is None or self.parent.cardinality is Cardinality.SINGULAR:
            return None
        return self.parent.route_key

    @property
    def handler_path(self) -> str:
        """
        :return: module qualified handler name, e.g. "blogs/posts"
        """
        return _join(self.module, self.descriptor.plural_name, sep="/")

    @property
    def base_path(self) -> str:
        return f"{self.path_prefix}/{self.descriptor.name}"

    @property
    def member_path(self) -> str:
        if self.singular:
            return self.base_path
        return f"{self.base_path}/<{self.descriptor.route_key}>"

    @property
    def member_name(self) -> str:
        return _join(self.name_prefix, self.descriptor.singular_name)

    @property
    def collection_name(self) -> str:
        """
        :return: endpoint of the collection, "<name>_index" for uncountable names ("news_index")
        """
        name = _join(self.name_prefix, self.descriptor.plural_name)
        if self.descriptor.plural_name == self.descriptor.singular_name:
            name += "_index"
        return name

    def _rule(self, endpoint, path, methods):
        methods = {method: action for method, action in methods if action in self.actions}
        if methods:
            return RouteRule(endpoint, path, methods)
        return None

    def rules(self):
        """
        :return: list of RouteRules, e.g. for "posts" nested in "blogs":
            blog_posts      /blogs/<blog_id>/posts                 GET index, POST create
            new_blog_post   /blogs/<blog_id>/posts/new             GET new
            blog_post       /blogs/<blog_id>/posts/<post_id>       GET show, PATCH/PUT update, DELETE destroy
            edit_blog_post  /blogs/<blog_id>/posts/<post_id>/edit  GET edit
        """
        member_methods = (("GET", SHOW), ("PATCH", UPDATE), ("PUT", UPDATE), ("DELETE", DESTROY))
        if self.singular:
            candidates = [
                self._rule(f"new_{self.member_name}", f"{self.base_path}/new", [("GET", NEW)]),
                self._rule(f"edit_{self.member_name}", f"{self.base_path}/edit", [("GET", EDIT)]),
                self._rule(self.member_name, self.base_path, (("POST", CREATE),) + member_methods),
            ]
        else:
            candidates = [
                self._rule(self.collection_name, self.base_path, [("GET", INDEX), ("POST", CREATE)]),
                self._rule(f"new_{self.member_name}", f"{self.base_path}/new", [("GET", NEW)]),
                self._rule(f"edit_{self.member_name}", f"{self.member_path}/edit", [("GET", EDIT)]),
                self._rule(self.member_name, self.member_path, member_methods),
            ]
        return [rule for rule in candidates if rule is not None]

    def rule_for(self, action: str) -> Optional[RouteRule]:
        for rule in self.rules():
            if action in rule.actions:
                return rule
        return None


@dataclass(frozen=True)
class _Frame:
    path_prefix: str = ""
    name_prefix: str = ""
    module: str = ""  # module of the resources declared in this frame
    nested_module: str = ""  # module of the children declared with the nested operations
    parent: Optional[RouteSpec] = None


class _Scope:
    """
    Returned by the declarations, entering it opens the child frame
    """

    def __init__(self, mapper, frame, spec=None):
        self.mapper = mapper
        self.frame = frame
        self.spec = spec

    def __enter__(self):
        self.mapper._frames.append(self.frame)
        return self.spec

    def __exit__(self, *exc_info):
        self.mapper._frames.pop()
        return False


class RouteMapper:
    """
    Declares the route table and binds it to the flask app
    """

    def __init__(self):
        self.specs = []
        self._frames = [_Frame()]
        self._bound = []
        self.store = SQLAlchemyStore()

    @property
    def frame(self) -> _Frame:
        return self._frames[-1]

    @property
    def in_resource_scope(self) -> bool:
        return self.frame.parent is not None

    #
    # declarations
    #
    def resources(self, name, only=None, exclude=None):
        """
        Declare a collection with all the actions (unless restricted by only/exclude)
        """
        return self._declare(name, Cardinality.PLURAL, PLURAL_ACTIONS, only, exclude, self.frame.module)

    def resource(self, name, only=None, exclude=None):
        """
        Declare a singular resource
        """
        return self._declare(name, Cardinality.SINGULAR, SINGULAR_ACTIONS, only, exclude, self.frame.module)

    def namespace(self, name):
        """
        Prefix the paths, endpoints and handler modules of the enclosed declarations
        """
        if not name:
            raise RouteConfigurationError("A namespace requires a name")
        frame = self.frame
        module = _join(frame.module, name, sep="/")
        return _Scope(
            self,
            _Frame(
                path_prefix=f"{frame.path_prefix}/{name}",
                name_prefix=_join(frame.name_prefix, name),
                module=module,
                nested_module=module,
            ),
        )

    def nest(self, name=None, only=None, exclude=None):
        """
        Declare a child of the current resource, singular or plural depending on the name.
        Without a name, open a scope declaring resources in the parent's module
        """
        self._require_resource_scope("nest")
        if name is None:
            frame = self.frame
            return _Scope(self, _Frame(frame.path_prefix, frame.name_prefix, frame.nested_module, frame.nested_module, frame.parent))
        cardinality = describe_name(name).cardinality
        return self._declare_nested(name, NEST_DEFAULTS[cardinality], only, exclude)

    def create(self, name, only=None, exclude=None):
        self._require_resource_scope("create")
        return self._declare_nested(name, CREATE_DEFAULTS, only, exclude)

    def edit(self, name, only=None, exclude=None):
        self._require_resource_scope("edit")
        return self._declare_nested(name, EDIT_DEFAULTS, only, exclude)

    def show(self, name, only=None, exclude=None):
        self._require_resource_scope("show")
        return self._declare_nested(name, SHOW_DEFAULTS, only, exclude)

    def destroy(self, name, only=None, exclude=None):
        self._require_resource_scope("destroy")
        return self._declare_nested(name, DESTROY_DEFAULTS, only, exclude)

    def list(self, name, only=None, exclude=None):
        self._require_resource_scope("list")
        return self._declare_nested(name, LIST_DEFAULTS, only, exclude)

    def _require_resource_scope(self, operation):
        if not self.in_resource_scope:
            raise RouteConfigurationError(f"can't use {operation} outside resource(s) scope")

    def _declare_nested(self, name, defaults, only, exclude):
        return self._declare(name, None, defaults, only, exclude, self.frame.nested_module)

    @staticmethod
    def _select_actions(name, cardinality, defaults, only, exclude):
        available = PLURAL_ACTIONS if cardinality is Cardinality.PLURAL else SINGULAR_ACTIONS
        if only is not None and exclude is not None:
            raise RouteConfigurationError(f'"{name}": use either only or exclude')
        if only is not None:
            if isinstance(only, str):
                only = [only]
            unknown = set(only) - available
            if unknown:
                raise RouteConfigurationError(f'"{name}": unsupported {cardinality.value} actions {sorted(unknown)}')
            actions = frozenset(only)
        elif exclude is not None:
            if isinstance(exclude, str):
                exclude = [exclude]
            actions = available - set(exclude)
        else:
            actions = frozenset(defaults) & available
        if not actions:
            raise RouteConfigurationError(f'"{name}": no {cardinality.value} actions to route')
        return actions

    def _declare(self, name, cardinality, defaults, only, exclude, module):
        descriptor = describe_name(name)
        if cardinality is not None and descriptor.cardinality is not cardinality:
            descriptor = ResourceDescriptor.from_singular(descriptor.singular_name, cardinality)
        actions = self._select_actions(name, descriptor.cardinality, defaults, only, exclude)

        frame = self.frame
        spec = RouteSpec(
            name=str(name),
            descriptor=descriptor,
            actions=actions,
            module=module,
            path_prefix=frame.path_prefix,
            name_prefix=frame.name_prefix,
            parent=frame.parent.descriptor if frame.parent is not None else None,
        )
        endpoints = {rule.endpoint for declared in self.specs for rule in declared.rules()}
        for rule in spec.rules():
            if rule.endpoint in endpoints:
                raise RouteConfigurationError(f'Duplicate route "{rule.endpoint}" ({rule.path})')
        self.specs.append(spec)
        resourceful.log.debug(f"declared {spec.handler_path}: {sorted(actions)}")

        child = _Frame(
            path_prefix=spec.member_path,
            name_prefix=spec.member_name,
            module=module,
            nested_module=_join(module, descriptor.plural_name, sep="/"),
            parent=spec,
        )
        return _Scope(self, child, spec)

    #
    # binding
    #
    def check(self, spec: RouteSpec, handler_cls) -> None:
        """
        :raises RouteConfigurationError: if the handler can't serve the route spec
        """
        variant = handler_cls.variant
        if variant.nested != spec.nested:
            raise RouteConfigurationError(f'"{spec.handler_path}": {handler_cls.__name__} is a {variant.name} handler')
        if variant.cardinality is not spec.cardinality:
            raise RouteConfigurationError(
                f'"{spec.handler_path}": {handler_cls.__name__} serves {variant.cardinality.value} resources, the route is {spec.cardinality.value}'
            )
        # a singular parent has no key in the url, the handler finds it (find_parent)
        if spec.parent_route_key is not None and handler_cls.parent_descriptor.route_key != spec.parent_route_key:
            raise RouteConfigurationError(
                f'"{spec.handler_path}": the route has no "{handler_cls.parent_descriptor.route_key}" parameter for {handler_cls.__name__}'
            )
        if not spec.singular and handler_cls.descriptor.route_key != spec.descriptor.route_key:
            raise RouteConfigurationError(
                f'"{spec.handler_path}": {handler_cls.__name__} looks up "{handler_cls.descriptor.route_key}", the route has "{spec.descriptor.route_key}"'
            )

    def init_app(self, app, registry) -> None:
        """
        Bind the declared specs to the registered handlers and add the url rules
        :param app: flask app
        :param registry: HandlerRegistry
        """
        self._bound = []
        for spec in self.specs:
            handler_cls = registry.get(spec.handler_path)
            if handler_cls is None:
                raise RouteConfigurationError(f'No handler registered for "{spec.handler_path}"')
            self.check(spec, handler_cls)
            for rule in spec.rules():
                view = handler_cls.as_view(rule.endpoint, actions=rule.methods, spec=spec)
                methods = set(rule.methods)
                if methods & set(OVERRIDABLE_METHODS):
                    # HTML forms send PATCH/PUT/DELETE as a POST with a "_method" field
                    methods.add("POST")
                app.add_url_rule(rule.path, rule.endpoint, view_func=view, methods=sorted(methods))
                resourceful.log.info(f"Exposing {handler_cls.__name__} on {rule.path} ({', '.join(rule.methods)})")
            self._bound.append((spec, handler_cls))

        app.extensions.setdefault("resourceful", {}).update(routes=self, handlers=registry)

    def locate(self, resource) -> Optional[str]:
        """
        :return: canonical url of the resource: the show url (with the fewest path variables) of a
            plural route dispatching into a handler of the resource's model, None if there is none
        """
        candidates = []
        for spec, handler_cls in self._bound:
            if handler_cls.model is not type(resource) or handler_cls.variant is NESTED_WEAK or spec.singular:
                continue
            rule = spec.rule_for(SHOW)
            if rule is None:
                continue
            values = {}
            for var in rule.variables:
                if var == spec.descriptor.route_key:
                    values[var] = self.store.key_of(resource, handler_cls.lookup_field)
                else:
                    values[var] = getattr(resource, var, None)
            if any(value is None for value in values.values()):
                continue
            candidates.append((len(values), rule.endpoint, values))
        if not candidates:
            return None
        _, endpoint, values = min(candidates, key=lambda candidate: candidate[0])
        return url_for(endpoint, **values)
