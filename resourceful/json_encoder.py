# resource to json encoding

import datetime
import decimal
from flask.json.provider import DefaultJSONProvider
from uuid import UUID
import resourceful
from .config import is_debug


class ResourceJSONProvider(DefaultJSONProvider):
    """
    Flask JSON encoding for models (anything implementing `to_dict`) and common types
    """

    sort_keys = False

    # pylint: disable=too-many-return-statements,arguments-differ,method-hidden
    def default(self, obj):
        """
        override the default json encoding
        :param obj: object to be encoded
        :return: encoded/serialized object
        """
        if obj is None:
            return None
        if hasattr(obj, "to_dict"):
            return obj.to_dict()
        if isinstance(obj, datetime.timedelta):
            return str(obj)
        if isinstance(obj, datetime.datetime):
            return obj.isoformat(" ")
        if isinstance(obj, (datetime.date, datetime.time)):
            return obj.isoformat()
        if isinstance(obj, set):
            return list(obj)
        if isinstance(obj, UUID):  # pragma: no cover
            return str(obj)
        if isinstance(obj, decimal.Decimal):  # pragma: no cover
            return float(obj)
        if isinstance(obj, bytes):  # pragma: no cover
            return obj.hex()

        if not is_debug():  # pragma: no cover
            resourceful.log.warning(f'JSON Encoding Error: Unknown object type "{type(obj)}" for {obj}')
            return {"error": "ResourceJSONProvider invalid object"}

        return str(obj)
