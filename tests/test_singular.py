"""
Singular routes in apps without any other route to the singular resource:

    /blogs/<blog_id>                    show
    /blogs/<blog_id>/setting            nested singular

and a singular top level resource (the actor's blog) with a singular child:

    /blog                               show, edit, update
    /blog/setting                       nested singular, edit, update
"""
import pytest

from resourceful import (
    NESTED_SINGULAR,
    SINGULAR,
    AllowAll,
    HandlerRegistry,
    ResourceHandler,
    RouteMapper,
)


def _setting_routes(**options):
    routes = RouteMapper()
    with routes.resources("blogs", only=["show"]):
        routes.nest("setting", **options)
    return routes


def _handoff_slots(client):
    with client.session_transaction() as sess:
        return sorted(key for key in sess if key.startswith("_handoff_"))


@pytest.fixture
def blog(models):
    def add(title="First", owner=None):
        blog = models.Blog(title=title, owner=owner)
        models.db.session.add(blog)
        models.db.session.commit()
        return blog

    return add


def test_created_child_is_shown_at_the_singular_route(make_client, blog):
    client = make_client(_setting_routes())
    url = f"/blogs/{blog().id}/setting"

    response = client.get(url)
    assert response.status_code == 302
    assert response.headers["Location"].endswith(f"{url}/new")

    response = client.post(url, data={"setting[theme]": "dark"})
    assert response.status_code == 303
    assert response.headers["Location"].endswith(url)

    # nothing else routes the setting: show renders it
    response = client.get(url)
    assert response.status_code == 200
    body = response.get_json()
    assert body["data"]["theme"] == "dark"
    assert body["meta"]["created"]["id"] == body["data"]["id"]
    assert _handoff_slots(client) == []

    assert client.get(url).get_json()["meta"]["created"] is None


def test_singular_routes_redirect_to_the_edit_form(make_client, blog):
    client = make_client(_setting_routes(exclude=["destroy"]))
    url = f"/blogs/{blog().id}/setting"

    response = client.post(url, data={"setting[theme]": "dark"})
    assert response.status_code == 303
    assert response.headers["Location"].endswith(f"{url}/edit")

    response = client.get(url)
    assert response.status_code == 302
    assert response.headers["Location"].endswith(f"{url}/edit")

    response = client.get(f"{url}/edit")
    assert response.status_code == 200
    assert response.get_json()["data"]["theme"] == "dark"


def test_handoff_does_not_survive_a_second_redirect(make_client, blog):
    client = make_client(_setting_routes())
    first, second = blog("First"), blog("Second")

    client.post(f"/blogs/{first.id}/setting", data={"setting[theme]": "dark"})
    assert _handoff_slots(client) == ["_handoff_created"]

    response = client.get(f"/blogs/{second.id}/setting")
    assert response.status_code == 302
    assert _handoff_slots(client) == []

    response = client.get(f"/blogs/{first.id}/setting")
    assert response.get_json()["meta"]["created"] is None


def test_json_create_keeps_only_the_created_slot(make_client, blog):
    client = make_client(_setting_routes())
    with client.session_transaction() as sess:
        sess["_handoff_updated"] = "stale"

    response = client.post(f"/blogs/{blog().id}/setting", json={"setting": {"theme": "dark"}})

    assert response.status_code == 201
    assert _handoff_slots(client) == ["_handoff_created"]


def _own_blog_app(make_client, models):
    registry = HandlerRegistry()

    @registry.register("blogs")
    class OwnBlogHandler(ResourceHandler):
        model = models.Blog
        variant = SINGULAR
        permitted = ["title"]
        policy_class = AllowAll
        owner_attribute = "owner"

    @registry.register("blogs/settings")
    class OwnSettingHandler(ResourceHandler):
        model = models.Setting
        parent_model = models.Blog
        variant = NESTED_SINGULAR
        permitted = ["theme"]
        policy_class = AllowAll

    routes = RouteMapper()
    with routes.resource("blog", only=["show", "edit", "update"]):
        routes.edit("setting")
    return make_client(routes, registry)


def test_singular_resource_is_the_actors(make_client, models, blog):
    client = _own_blog_app(make_client, models)
    blog("Public")
    blog("Bob's", owner="bob")

    response = client.get("/blog", headers={"X-Actor": "bob"})
    assert response.status_code == 200
    assert response.get_json()["data"]["title"] == "Bob's"

    assert client.get("/blog", headers={"X-Actor": "alice"}).status_code == 404

    response = client.patch("/blog", json={"blog": {"title": "Renamed"}}, headers={"X-Actor": "bob"})
    assert response.status_code == 200
    assert response.headers["Location"].endswith("/blog/edit")
    assert client.get("/blog", headers={"X-Actor": "bob"}).get_json()["data"]["title"] == "Renamed"


def test_child_of_a_singular_parent(make_client, models, blog):
    client = _own_blog_app(make_client, models)
    owned = blog("Bob's", owner="bob")
    models.db.session.add(models.Setting(blog_id=owned.id))
    models.db.session.commit()

    response = client.get("/blog/setting/edit", headers={"X-Actor": "bob"})
    assert response.status_code == 200
    assert response.get_json()["data"]["theme"] == "light"

    response = client.patch("/blog/setting", json={"setting": {"theme": "dark"}}, headers={"X-Actor": "bob"})
    assert response.status_code == 200
    assert response.headers["Location"].endswith("/blog/setting/edit")
    assert models.db.session.get(models.Setting, response.get_json()["data"]["id"]).theme == "dark"

    # alice has no blog: the parent isn't found
    assert client.get("/blog/setting/edit", headers={"X-Actor": "alice"}).status_code == 404
