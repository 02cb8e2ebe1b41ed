# Cross-action handoff
#
# After a successful create or update the handler redirects. The next request
# can find out which resource was just created/updated through one of the two
# session slots below. A slot holds a signed, timestamped token
# (itsdangerous), it is popped on the first read. A redirect discards the
# slots it didn't just write, a token never survives a second redirect.
#
# The token only names the resource kind and key, the entity is looked up
# again through the policy scope of the handler registered for that kind.
#
import uuid
from flask import current_app, session
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
import resourceful
from .config import get_config
from .errors import NotFoundError
from .identity import ResourceDescriptor

CREATED = "created"
UPDATED = "updated"
SLOTS = (CREATED, UPDATED)


def _session_key(slot: str) -> str:
    if slot not in SLOTS:
        raise ValueError(f'Invalid handoff slot "{slot}"')
    return f"_handoff_{slot}"


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(current_app.secret_key, salt=get_config("HANDOFF_SALT"))


def put(slot: str, descriptor: ResourceDescriptor, key) -> str:
    """
    Store a reference to the resource in the slot, replacing the previous one
    :return: the token
    """
    payload = {"type": descriptor.singular_name, "key": str(key), "nonce": uuid.uuid4().hex}
    token = _serializer().dumps(payload)
    session[_session_key(slot)] = token
    resourceful.log.debug(f"handoff {slot}: {descriptor.singular_name} {key}")
    return token


def take(slot: str):
    """
    Read and clear the slot
    :return: {"type": .., "key": ..} or None if the slot is empty or the token invalid
    """
    token = session.pop(_session_key(slot), None)
    if token is None:
        return None
    try:
        return _serializer().loads(token, max_age=int(get_config("HANDOFF_MAX_AGE")))
    except SignatureExpired:
        resourceful.log.info(f"handoff {slot}: token expired")
    except BadSignature:
        resourceful.log.warning(f"handoff {slot}: invalid token signature")
    return None


def discard(*slots: str) -> None:
    """
    Clear the slots without reading them
    """
    for slot in slots:
        if session.pop(_session_key(slot), None) is not None:
            resourceful.log.debug(f"handoff {slot}: discarded")


def resolve(slot: str, context, registry):
    """
    Resolve the slot into the entity, memoized per request
    :param context: RequestContext of the current request
    :param registry: HandlerRegistry used to find the scope of the resource kind
    :return: the entity or None
    """
    if slot in context.handoffs:
        return context.handoffs[slot]

    result = None
    payload = take(slot)
    if payload is not None:
        handler_cls = registry.for_resource(payload.get("type"))
        if handler_cls is None:
            resourceful.log.warning(f'handoff {slot}: no handler for "{payload.get("type")}"')
        else:
            policy = handler_cls.policy_class(context.actor)
            try:
                result = handler_cls.store.find(policy.scope(handler_cls.model), payload["key"])
            except NotFoundError:
                result = None
    context.handoffs[slot] = result
    return result
