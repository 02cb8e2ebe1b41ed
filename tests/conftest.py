from contextlib import ExitStack, contextmanager
from types import SimpleNamespace

import pytest
from flask import Flask, g, request
from flask_sqlalchemy import SQLAlchemy

from resourceful import (
    NESTED,
    NESTED_SINGULAR,
    NESTED_WEAK,
    AllowAll,
    HandlerRegistry,
    Policy,
    ResourceBase,
    ResourceHandler,
    Resourceful,
    RouteMapper,
)

db = SQLAlchemy()


class Blog(ResourceBase, db.Model):
    __tablename__ = "blogs"
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(64), nullable=False)
    owner = db.Column(db.String(32), nullable=True)
    posts = db.relationship("Post", back_populates="blog")


class Post(ResourceBase, db.Model):
    __tablename__ = "posts"
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(64), nullable=False)
    body = db.Column(db.Text, default="")
    featured = db.Column(db.Boolean, default=False)
    author = db.Column(db.String(32), nullable=True)
    blog_id = db.Column(db.Integer, db.ForeignKey("blogs.id"), nullable=False)
    blog = db.relationship("Blog", back_populates="posts")


class Setting(ResourceBase, db.Model):
    __tablename__ = "settings"
    id = db.Column(db.Integer, primary_key=True)
    theme = db.Column(db.String(16), nullable=False, default="light")
    blog_id = db.Column(db.Integer, db.ForeignKey("blogs.id"), nullable=False, unique=True)


class BlogPolicy(Policy):
    """Blogs with an owner are private"""

    def can_show(self, blog):
        return blog.owner is None or blog.owner == self.actor

    def can_update(self, blog):
        return self.can_show(blog)

    def can_create(self, blog):
        return self.can_show(blog)

    def scope(self, model):
        query = super().scope(model)
        return query.filter((model.owner.is_(None)) | (model.owner == self.actor))


registry = HandlerRegistry()


@registry.register("blogs")
class BlogsHandler(ResourceHandler):
    model = Blog
    permitted = ["title"]
    policy_class = BlogPolicy
    owner_attribute = "owner"


@registry.register("blogs/posts")
class PostsHandler(ResourceHandler):
    model = Post
    parent_model = Blog
    variant = NESTED
    permitted = ["title", "body"]
    policy_class = AllowAll
    owner_attribute = "author"


@registry.register("blogs/settings")
class BlogSettingHandler(ResourceHandler):
    model = Setting
    parent_model = Blog
    variant = NESTED_SINGULAR
    permitted = ["theme"]
    policy_class = AllowAll


@registry.register("blogs/appearances")
class AppearanceHandler(ResourceHandler):
    parent_model = Blog
    variant = NESTED_WEAK
    permitted = ["title"]
    policy_class = BlogPolicy


@registry.register("settings")
class SettingsHandler(ResourceHandler):
    model = Setting
    permitted = ["theme"]
    policy_class = AllowAll


routes = RouteMapper()
with routes.resources("blogs", only=["index", "show"]):
    routes.nest("posts", only=["index", "new", "create", "show", "destroy"])
    routes.nest("setting")
    routes.edit("appearance")
routes.resources("settings", only=["show"])


@contextmanager
def running(route_table, handler_registry=registry):
    """
    Flask app serving the route table, inside its app context, on an empty database
    """
    app = Flask(__name__)
    app.config.update(SQLALCHEMY_DATABASE_URI="sqlite://", SECRET_KEY="not-so-secret", TESTING=True)
    db.init_app(app)

    @app.before_request
    def set_actor():
        g.actor = request.headers.get("X-Actor")

    with app.app_context():
        Resourceful(app, routes=route_table, handlers=handler_registry, app_db=db)
        db.create_all()
        try:
            yield app
        finally:
            db.session.remove()
            db.drop_all()


@pytest.fixture
def models():
    return SimpleNamespace(Blog=Blog, Post=Post, Setting=Setting, db=db)


@pytest.fixture
def app():
    with running(routes) as app:
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_client():
    """
    Factory of test clients for apps serving another route table (and handler registry)
    """
    with ExitStack() as stack:

        def make(route_table, handler_registry=registry):
            return stack.enter_context(running(route_table, handler_registry)).test_client()

        yield make


@pytest.fixture
def blogs(app):
    first = Blog(title="First")
    second = Blog(title="Second")
    private = Blog(title="Private", owner="bob")
    first.posts = [Post(title="Hello"), Post(title="World")]
    second.posts = [Post(title="Elsewhere")]
    db.session.add_all([first, second, private])
    db.session.commit()
    return SimpleNamespace(first=first, second=second, private=private)
