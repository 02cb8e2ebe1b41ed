"""
Outcome rendering

The renderer turns an action Outcome into a flask response. Views can be
plugged in per (action, "success" | "failure") key, e.g.

    renderer = Renderer(views={("show", "success"): lambda **assigns: render_template("post.html", **assigns)})

Without a view the outcome is rendered as a JSON document:

    {
        "data": {...},
        "meta": {"action": "show", "created": null, "updated": null}
    }
"""
from flask import flash, jsonify, make_response, redirect, request
import resourceful
from . import handoff
from .config import get_config
from .errors import BadRequestError, ResourceError
from .pipeline import INVALID, REDIRECT
from .policy import CREATE, DESTROY, INDEX, SHOW, UPDATE

SUCCESS = "success"
FAILURE = "failure"

# handoff slot written by the actions that redirect after a write
WRITTEN_SLOTS = {CREATE: handoff.CREATED, UPDATE: handoff.UPDATED}


def wants_json() -> bool:
    if request.is_json:
        return True
    return request.accept_mimetypes.best == "application/json"


def get_pagination():
    """
    :return: offset, limit parsed from the "page[offset]" and "page[limit]" args
    """
    try:
        offset = int(request.args.get("page[offset]", 0))
        limit = int(request.args.get("page[limit]", get_config("DEFAULT_PAGE_LIMIT")))
    except ValueError:
        raise BadRequestError("Pagination Value Error")
    if offset < 0 or limit < 0:
        raise BadRequestError("Pagination Value Error")
    return offset, min(limit, int(get_config("MAX_PAGE_LIMIT")))


class Renderer:
    """
    :param views: mapping of (action, "success" | "failure") to a callable receiving the assigns as kwargs
    """

    def __init__(self, views=None):
        self.views = dict(views or {})

    def respond(self, outcome, context, handler):
        if outcome.kind == REDIRECT:
            return self.redirect(outcome, context, handler)

        assigns = self.assigns(outcome, context, handler)
        view = self.views.get((outcome.action, FAILURE if outcome.kind == INVALID else SUCCESS))
        if view is not None:
            return make_response(view(**assigns), outcome.status)
        return self.render_json(outcome, context, handler, assigns)

    @staticmethod
    def assigns(outcome, context, handler) -> dict:
        """
        Rendering variables: the resource (or collection), the parent, the handoff
        resources and the field errors
        """
        result = dict(context.assigns)
        result["resource"] = context.current_resource
        result["errors"] = outcome.errors
        result["created_resource"] = handler.created_resource(context)
        result["updated_resource"] = handler.updated_resource(context)
        if context.parent is not None:
            result["parent"] = context.parent.resource
        return result

    def render_json(self, outcome, context, handler, assigns):
        meta = {"action": outcome.action, "created": assigns["created_resource"], "updated": assigns["updated_resource"]}
        if outcome.action == INDEX:
            collection = assigns[handler.descriptor.plural_name]
            offset, limit = get_pagination()
            meta["count"] = collection.count()
            meta["offset"] = offset
            meta["limit"] = limit
            data = collection.offset(offset).limit(limit).all()
        else:
            data = assigns["resource"]
        body = {"data": data, "meta": meta}
        if outcome.kind == INVALID:
            body["errors"] = outcome.errors
        return make_response(jsonify(body), outcome.status)

    def redirect(self, outcome, context, handler):
        written = WRITTEN_SLOTS.get(outcome.action)
        handoff.discard(*(slot for slot in handoff.SLOTS if slot != written))

        if outcome.action == SHOW or not wants_json():
            if outcome.notice:
                flash(outcome.notice)
            resourceful.log.debug(f"{outcome.action}: redirect to {outcome.location}")
            return redirect(outcome.location, code=outcome.status)

        if outcome.action == DESTROY:
            return make_response("", 204)

        status = 201 if outcome.action == CREATE else 200
        body = {"data": context.current_resource, "meta": {"action": outcome.action, "notice": outcome.notice}}
        response = make_response(jsonify(body), status)
        if outcome.action in (CREATE, UPDATE):
            response.headers["Location"] = outcome.location
        return response

    @staticmethod
    def error(exc: ResourceError):
        """
        :return: JSON error document response
        """
        error = {"title": exc.message, "detail": exc.message, "code": str(exc.status_code)}
        body = {"errors": [error]}
        if getattr(exc, "errors", None):
            body["meta"] = {"errors": exc.errors}
        return make_response(jsonify(body), exc.status_code)
