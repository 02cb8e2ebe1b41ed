# flake8: noqa: F401
#
# resourceful_init has to be imported first: the other modules use the DB and log defined there
#
from .resourceful_init import DB, log, Resourceful
from .errors import (
    ConfigurationError,
    RouteConfigurationError,
    ResourceError,
    NotFoundError,
    UnAuthorizedError,
    BadRequestError,
    ValidationError,
    GenericError,
)
from .json_encoder import ResourceJSONProvider
from .identity import Cardinality, ResourceDescriptor, describe, describe_name, inflection, uncountable
from .base import ResourceBase
from .persistence import SQLAlchemyStore
from .policy import Policy, AllowAll, authorize
from .context import RequestContext, ParentContext
from .locator import ResourceLocator
from .params import collect_params, permit
from .variants import Variant, PLAIN, SINGULAR, NESTED, NESTED_SINGULAR, NESTED_WEAK
from .pipeline import ActionPipeline, Outcome
from .rendering import Renderer
from .handler import ResourceHandler, HandlerRegistry, handlers
from .routing import RouteMapper, RouteSpec, RouteRule
from .__about__ import __version__, __description__

__all__ = (
    "__version__",
    "__description__",
    #
    "Resourceful",
    "DB",
    "log",
    # naming:
    "Cardinality",
    "ResourceDescriptor",
    "describe",
    "describe_name",
    "inflection",
    "uncountable",
    # db:
    "ResourceBase",
    "SQLAlchemyStore",
    # authorization:
    "Policy",
    "AllowAll",
    "authorize",
    # request handling:
    "RequestContext",
    "ParentContext",
    "ResourceLocator",
    "collect_params",
    "permit",
    "Variant",
    "PLAIN",
    "SINGULAR",
    "NESTED",
    "NESTED_SINGULAR",
    "NESTED_WEAK",
    "ActionPipeline",
    "Outcome",
    "Renderer",
    "ResourceJSONProvider",
    "ResourceHandler",
    "HandlerRegistry",
    "handlers",
    # routing:
    "RouteMapper",
    "RouteSpec",
    "RouteRule",
    # Errors:
    "ConfigurationError",
    "RouteConfigurationError",
    "ResourceError",
    "NotFoundError",
    "UnAuthorizedError",
    "BadRequestError",
    "ValidationError",
    "GenericError",
)
