# Request parameter collection and allow-listing
#
# HTML forms post nested parameters as "post[title]=...", these are grouped
# into {"post": {"title": ...}} so JSON and form clients look the same to the
# actions.
#
import re
import resourceful
from .errors import BadRequestError

_bracket_key = re.compile(r"^(\w+)\[(\w+)\]$")


def _merge(params: dict, key: str, value) -> None:
    match = _bracket_key.match(key)
    if match is None:
        params[key] = value
        return
    outer, inner = match.groups()
    nested = params.get(outer)
    if not isinstance(nested, dict):
        nested = params[outer] = {}
    nested[inner] = value


def collect_params(request, view_args: dict = None) -> dict:
    """
    :param request: flask request
    :param view_args: url path variables, these take precedence
    :return: dict with query args, form fields, json object body and path variables
    """
    params = {}
    for key, value in request.args.items():
        _merge(params, key, value)
    for key, value in request.form.items():
        _merge(params, key, value)
    if request.is_json:
        body = request.get_json(silent=True)
        if isinstance(body, dict):
            for key, value in body.items():
                if isinstance(value, dict) and isinstance(params.get(key), dict):
                    params[key].update(value)
                else:
                    params[key] = value
        elif body is not None:
            raise BadRequestError("Request body should be a JSON object")
    params.update(view_args or {})
    return params


def permit(params: dict, param_key: str, permitted, required: bool = True) -> dict:
    """
    :param params: collected request params
    :param param_key: the key holding the resource attributes, e.g. "post"
    :param permitted: attribute names that may be assigned
    :param required: if False, a missing param_key yields an empty dict
    :return: dict containing only the permitted attributes
    :raises BadRequestError: param_key is missing (and required) or isn't an object
    """
    attributes = params.get(param_key)
    if attributes is None or attributes == {}:
        if required:
            raise BadRequestError(f'param is missing or the value is empty: "{param_key}"')
        return {}
    if not isinstance(attributes, dict):
        raise BadRequestError(f'"{param_key}" should be an object')

    permitted = set(permitted or ())
    result = {key: value for key, value in attributes.items() if key in permitted}
    dropped = sorted(set(attributes) - permitted)
    if dropped:
        resourceful.log.info(f"Unpermitted {param_key} parameters: {', '.join(dropped)}")
    return result
