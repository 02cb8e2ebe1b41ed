"""Persistence contract: find, scope, save and destroy entities.

Writes are flushed here, the request boundary (``action_decorator``) commits
or rolls back the session.
"""
import sqlalchemy
from sqlalchemy import inspect as sqla_inspect
import resourceful
from .errors import GenericError, NotFoundError, ValidationError


class SQLAlchemyStore:
    """
    Entity access through the active Flask-SQLAlchemy session
    """

    def __init__(self, db=None):
        self._db = db

    @property
    def session(self):
        db = self._db if self._db is not None else resourceful.DB
        return db.session

    def query(self, model):
        """
        :return: the unscoped base query for a model
        """
        return self.session.query(model)

    @staticmethod
    def scope(query, **criteria):
        """
        Narrow a query with equality predicates
        """
        if not criteria:
            return query
        return query.filter_by(**criteria)

    @staticmethod
    def lookup_column(model, field=None):
        mapper = sqla_inspect(model)
        if field:
            return mapper.columns[field]
        return mapper.primary_key[0]

    def find(self, scope, key, field=None):
        """
        :param scope: query to search in
        :param key: route key value (usually a string taken from the url)
        :param field: lookup attribute name, the primary key if not set
        :return: the entity
        :raises NotFoundError: if the key doesn't resolve within the scope
        """
        model = scope.column_descriptions[0]["entity"]
        column = self.lookup_column(model, field)
        try:
            python_type = column.type.python_type
        except NotImplementedError:  # pragma: no cover
            python_type = None
        if key is None:
            raise NotFoundError(f'No "{model.__name__}" key')
        if python_type is not None and not isinstance(key, python_type):
            try:
                key = python_type(key)
            except (TypeError, ValueError):
                raise NotFoundError(f'Invalid "{model.__name__}" key "{key}"')
        instance = scope.filter(column == key).first()
        if instance is None:
            raise NotFoundError(f'Invalid "{model.__name__}" key "{key}"')
        return instance

    @staticmethod
    def key_of(entity, field=None):
        """
        :return: the value used to address the entity in urls and foreign keys
        """
        if field:
            return getattr(entity, field)
        prop = sqla_inspect(type(entity)).get_property_by_column(sqla_inspect(type(entity)).primary_key[0])
        return getattr(entity, prop.key)

    def save(self, entity):
        """
        Validate and flush the entity
        :raises ValidationError: with the field errors if the entity was rejected
        """
        validate = getattr(entity, "_s_validate", None)
        errors = validate() if validate is not None else {}
        if errors:
            raise ValidationError(errors)
        self.session.add(entity)
        try:
            self.session.flush()
        except sqlalchemy.exc.IntegrityError as exc:
            # Exception may arise when a db constraint has been violated (e.g. duplicate key)
            self.session.rollback()
            resourceful.log.warning(str(exc.orig))
            raise ValidationError({"base": [str(exc.orig)]})
        return entity

    def destroy(self, entity):
        """
        :raises GenericError: if the entity could not be deleted
        """
        try:
            self.session.delete(entity)
            self.session.flush()
        except sqlalchemy.exc.SQLAlchemyError as exc:
            raise GenericError(exc)
