# base.py: implements the ResourceBase SQLAlchemy model mixin
#
# pylint: disable=no-self-argument,no-member,protected-access
#
"""
ResourceBase class customizable attributes and methods

exclude_attrs:
Type: List[str]
Attribute names that are not serialized by `to_dict`

_s_columns:
Type: classproperty
Description: List of mapped column attributes

_s_validate:
Type: method
Description: Returns a dict of field errors, an empty dict means the instance can be saved

to_dict:
Type: method
Description: Dictionary with the column values, used by the JSON provider
"""
from functools import lru_cache
from sqlalchemy import inspect as sqla_inspect
from .util import classproperty

BLANK_MESSAGE = "can't be blank"


class ResourceBase:
    """This SQLAlchemy mixin implements the entity side of the persistence contract:
    validation before save and serialization for rendering

    The mixin methods have the `_s_` prefix so they don't clash with column names
    """

    exclude_attrs = []  # list of attribute names that should not be serialized

    @classproperty
    @lru_cache(maxsize=32)
    def _s_columns(cls) -> list:
        """
        :return: list of mapped column properties
        """
        return list(sqla_inspect(cls).column_attrs)

    def _s_validate(self) -> dict:
        """
        Presence check for the columns that can't be NULL and have no default value

        :return: dict of {field name: [messages]}
        """
        errors = {}
        for prop in self._s_columns:
            column = prop.columns[0]
            if column.nullable or column.primary_key:
                continue
            if column.default is not None or column.server_default is not None:
                continue
            value = getattr(self, prop.key, None)
            if value is None or (isinstance(value, str) and not value.strip()):
                errors.setdefault(prop.key, []).append(BLANK_MESSAGE)
        return errors

    def to_dict(self) -> dict:
        """
        Create a dictionary with all the instance column values
        this method will be called by ResourceJSONProvider to serialize objects
        """
        return {prop.key: getattr(self, prop.key) for prop in self._s_columns if prop.key not in self.exclude_attrs}

    def __repr__(self):
        state = sqla_inspect(self)
        key = state.identity[0] if state.identity else None
        return f"<{self.__class__.__name__} {key}>"
