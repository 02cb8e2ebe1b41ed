import logging
import os
import sys
from flask import Flask
from flask_sqlalchemy import SQLAlchemy
import resourceful
import flask.app
from .errors import ConfigurationError
from .json_encoder import ResourceJSONProvider


class Resourceful:
    """This class configures the Flask application to serve ResourceHandler views
    :param app: a Flask application.
    :param routes: a RouteMapper with the declared route table
    :param handlers: the HandlerRegistry the route table dispatches into
    :param LOGLEVEL: loglevel configuration variable, values from logging module (0: trace, .. 50: critical)
    """

    # Configuration settings are stored as class variables
    HANDOFF_MAX_AGE = 300  # seconds a created/updated handoff token stays valid
    HANDOFF_SALT = "resourceful.handoff"
    DEFAULT_PAGE_LIMIT = 250
    MAX_PAGE_LIMIT = 10000
    ACTOR_ATTRIBUTE = "actor"  # flask.g attribute holding the current actor
    LOGLEVEL = logging.WARNING

    def __init__(self, app: flask.app.Flask, *args, **kwargs) -> None:
        """
        Constructor
        """
        self.app = app
        if app is not None:
            self.init_app(app, *args, **kwargs)

    def init_app(self, app: flask.app.Flask, routes=None, handlers=None, app_db: SQLAlchemy = None, **kwargs) -> None:
        """
        Application initialization, the route table is built here (i.e. at startup)
        """
        if not isinstance(app, Flask):  # pragma: no cover
            raise TypeError("'app' should be Flask.")

        if not app.secret_key:
            # the handoff slots and notices live in the signed session cookie
            raise ConfigurationError("Resourceful requires the app SECRET_KEY to be set")

        if app_db is None:
            app_db = app.extensions["sqlalchemy"]

        resourceful.DB = self.db = app_db
        app.json = ResourceJSONProvider(app)

        if app.config.get("DEBUG", False):
            log.setLevel(logging.DEBUG)

        for conf_name, conf_val in kwargs.items():
            setattr(Resourceful, conf_name, conf_val)

        resourceful.config.get_config.cache_clear()

        if handlers is None:
            handlers = resourceful.handlers
        app.extensions.setdefault("resourceful", {}).update(routes=routes, handlers=handlers)
        if routes is not None:
            routes.init_app(app, handlers)

        # pylint: disable=unused-argument,unused-variable
        @app.teardown_appcontext
        def shutdown_session(exception=None):
            """cfr. http://flask.pocoo.org/docs/0.12/patterns/sqlalchemy/"""
            self.db.session.remove()

    @staticmethod
    def init_logging(loglevel: int = logging.WARNING) -> logging.Logger:
        """
        Specify the log format used in the webserver logs
        """
        log = logging.getLogger(__name__)
        if log.level == logging.NOTSET:
            handler = logging.StreamHandler(sys.stderr)
            formatter = logging.Formatter("[%(asctime)s] %(levelname)s: %(message)s")
            handler.setFormatter(formatter)
            log.setLevel(loglevel)
            log.addHandler(handler)
        return log


#
# DB and logging initialization
#
DB = SQLAlchemy()

try:
    DEBUG = os.getenv("DEBUG", logging.WARNING)
    LOGLEVEL = int(DEBUG)
except ValueError:  # pragma: no cover
    print(f'Invalid LogLevel in DEBUG Environment Variable! "{DEBUG}"')
    LOGLEVEL = logging.INFO

log = Resourceful.init_logging(LOGLEVEL)
