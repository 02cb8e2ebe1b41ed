# Exception Handlers
#
# The application loglevel determines the level of detail shown to the user.
# If set to debug, too much sensitive info might be shown !
#
# ResourceError exceptions are caught in action_decorator and formatted, for example:
# {
#     "errors": [
#         {
#             "title": "Authorization Error: ",
#             "detail": "Authorization Error: ",
#             "code": "403"
#         }
#     ]
# }
#
# ConfigurationError is raised while the handlers and the route table are built,
# it is never converted into a response.
#
from werkzeug.exceptions import NotFound
import resourceful
from http import HTTPStatus
from .config import is_debug

HIDDEN_LOG = "(debug logging disabled)"


class ConfigurationError(Exception):
    """
    Programmer misuse: a handler or route declaration that can't work.
    Raised at class creation or route table build time, never while handling a request
    """


class RouteConfigurationError(ConfigurationError):
    """
    Invalid route declaration (e.g. a nested route outside a parent resource scope)
    """


class ResourceError(Exception):
    status_code = HTTPStatus.INTERNAL_SERVER_ERROR.value
    message = ""


class NotFoundError(ResourceError, NotFound):
    """
    This exception is raised when an item was not found or isn't visible to the actor
    """

    status_code = HTTPStatus.NOT_FOUND.value
    message = "NotFoundError "

    def __init__(self, message="", status_code=HTTPStatus.NOT_FOUND.value):
        """
        :param message: Message to be returned in the (json) body
        :param status_code: HTTP Status code
        """
        NotFound.__init__(self)
        self.status_code = status_code
        resourceful.log.info("Not found: %s", message)
        if is_debug():
            self.message += message
        else:
            self.message += HIDDEN_LOG


class UnAuthorizedError(ResourceError):
    """
    This exception is raised when the actor lacks a capability on a target
    we use FORBIDDEN(403) instead of UNAUTHORIZED(401)
    """

    status_code = HTTPStatus.FORBIDDEN.value
    message = "Authorization Error: "

    def __init__(self, message="", status_code=HTTPStatus.FORBIDDEN.value):
        Exception.__init__(self)
        self.status_code = status_code
        resourceful.log.warning("UnAuthorizedError: %s", message)
        if is_debug():
            self.message += message
        else:
            self.message += HIDDEN_LOG


class BadRequestError(ResourceError):
    """
    Malformed client input, e.g. a required parameter key is missing
    Always send back the message to the client in the response
    """

    status_code = HTTPStatus.BAD_REQUEST.value
    message = "Bad Request: "

    def __init__(self, message="", status_code=HTTPStatus.BAD_REQUEST.value):
        Exception.__init__(self)
        self.status_code = status_code
        resourceful.log.warning("BadRequestError: %s", message)
        self.message += message


class ValidationError(ResourceError):
    """
    This exception is raised when persistence rejects the field values of an entity
    The field errors are always sent back to the client
    """

    status_code = HTTPStatus.UNPROCESSABLE_ENTITY.value
    message = "Validation Error: "

    def __init__(self, errors=None, status_code=HTTPStatus.UNPROCESSABLE_ENTITY.value):
        """
        :param errors: dict mapping a field name (or "base") to a list of messages
        """
        Exception.__init__(self)
        self.status_code = status_code
        self.errors = dict(errors or {})
        resourceful.log.info("ValidationError: %s", self.errors)
        self.message += ", ".join(f"{field} {' '.join(msgs)}" for field, msgs in self.errors.items())


class GenericError(ResourceError):
    """
    This exception is raised when the persistence layer failed
    """

    status_code = HTTPStatus.INTERNAL_SERVER_ERROR.value  # 500
    message = "Generic Error: "

    def __init__(self, message, status_code=HTTPStatus.INTERNAL_SERVER_ERROR.value):
        Exception.__init__(self)
        self.status_code = status_code
        resourceful.log.error("Generic Error: %s", message)
        if is_debug():
            self.message += str(message)
        else:
            self.message += HIDDEN_LOG
