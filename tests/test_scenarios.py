"""
Request scenarios through the flask test client, see conftest.py for the route table:

    /blogs                              index (BlogPolicy scope)
    /blogs/<blog_id>                    show
    /blogs/<blog_id>/posts[/<post_id>]  nested: index, new, create, show, destroy
    /blogs/<blog_id>/setting            nested singular: new, create, show (redirect)
    /blogs/<blog_id>/appearance         nested weak: edit, update of the blog itself
    /settings/<setting_id>              show
"""
import sqlalchemy

from resourceful import RouteMapper


def _posts_url(blog, post_id=None):
    url = f"/blogs/{blog.id}/posts"
    return f"{url}/{post_id}" if post_id is not None else url


def test_nested_listing_is_scoped_to_the_parent(client, blogs):
    first_id = blogs.first.id

    response = client.get(_posts_url(blogs.first))

    assert response.status_code == 200
    body = response.get_json()
    ids = [post["id"] for post in body["data"]]
    assert ids == sorted(ids)
    assert {post["title"] for post in body["data"]} == {"Hello", "World"}
    assert all(post["blog_id"] == first_id for post in body["data"])
    assert body["meta"]["count"] == 2


def test_nested_listing_pagination(client, blogs):
    response = client.get(_posts_url(blogs.first), query_string={"page[offset]": 1, "page[limit]": 1})

    body = response.get_json()
    assert len(body["data"]) == 1
    assert body["meta"]["count"] == 2
    assert body["meta"]["offset"] == 1
    assert body["meta"]["limit"] == 1

    assert client.get(_posts_url(blogs.first), query_string={"page[limit]": "many"}).status_code == 400


def test_singular_create_or_redirect(client, blogs):
    url = f"/blogs/{blogs.first.id}/setting"

    response = client.get(url)
    assert response.status_code == 302
    assert response.headers["Location"].endswith(f"{url}/new")

    assert client.get(f"{url}/new").status_code == 200

    response = client.post(url, json={"setting": {"theme": "dark"}})
    assert response.status_code == 201
    setting_id = response.get_json()["data"]["id"]

    response = client.get(url)
    assert response.status_code == 302
    assert response.headers["Location"].endswith(f"/settings/{setting_id}")

    body = client.get(f"/settings/{setting_id}").get_json()
    assert body["data"]["theme"] == "dark"
    assert body["data"]["blog_id"] == blogs.first.id


def test_weak_update_changes_the_parent(client, blogs):
    blog_id = blogs.first.id

    response = client.get(f"/blogs/{blog_id}/appearance/edit")
    assert response.status_code == 200
    assert response.get_json()["data"]["title"] == "First"

    response = client.patch(f"/blogs/{blog_id}/appearance", json={"blog": {"title": "Renamed", "owner": "mallory"}})
    assert response.status_code == 200
    assert response.headers["Location"].endswith(f"/blogs/{blog_id}")

    body = client.get(f"/blogs/{blog_id}").get_json()
    assert body["data"]["title"] == "Renamed"
    assert body["data"]["owner"] is None
    assert body["meta"]["updated"]["id"] == blog_id


def test_weak_update_requires_the_parent(client, blogs):
    url = f"/blogs/{blogs.private.id}/appearance"

    assert client.patch(url, json={"blog": {"title": "Mine"}}, headers={"X-Actor": "alice"}).status_code == 403
    assert client.patch(url, json={"blog": {"title": "Mine"}}, headers={"X-Actor": "bob"}).status_code == 200


def test_weak_update_validation_failure(client, blogs):
    blog_id = blogs.first.id

    response = client.patch(f"/blogs/{blog_id}/appearance", json={"blog": {"title": ""}})

    assert response.status_code == 422
    body = response.get_json()
    assert body["errors"] == {"title": ["can't be blank"]}
    assert body["meta"]["action"] == "edit"
    assert client.get(f"/blogs/{blog_id}").get_json()["data"]["title"] == "First"


def test_unpermitted_fields_are_dropped(client, blogs, models):
    first_id = blogs.first.id
    payload = {"post": {"title": "New", "body": "text", "featured": True, "blog_id": blogs.second.id}}

    response = client.post(_posts_url(blogs.first), json=payload)

    assert response.status_code == 201
    post = models.db.session.get(models.Post, response.get_json()["data"]["id"])
    assert post.featured is False
    assert post.blog_id == first_id


def test_create_then_show_round_trip(client, blogs):
    submitted = {"title": "Round trip", "body": "there and back"}

    response = client.post(_posts_url(blogs.first), json={"post": submitted}, headers={"X-Actor": "alice"})

    assert response.status_code == 201
    location = response.headers["Location"]
    body = client.get(location).get_json()
    assert {key: body["data"][key] for key in submitted} == submitted
    assert body["data"]["author"] == "alice"
    assert body["meta"]["created"] == body["data"]

    # the handoff slot is read once
    assert client.get(location).get_json()["meta"]["created"] is None


def test_invalid_create_renders_the_form_errors(client, blogs, models):
    count = models.db.session.query(models.Post).count()

    response = client.post(_posts_url(blogs.first), json={"post": {"body": "no title"}})

    assert response.status_code == 422
    body = response.get_json()
    assert body["errors"] == {"title": ["can't be blank"]}
    assert body["meta"]["action"] == "new"
    assert models.db.session.query(models.Post).count() == count
    post_id = blogs.first.posts[0].id
    assert client.get(_posts_url(blogs.first, post_id)).get_json()["meta"]["created"] is None


def test_new_applies_the_default_attributes(client, blogs):
    response = client.get(f"{_posts_url(blogs.first)}/new", headers={"X-Actor": "alice"})

    assert response.status_code == 200
    data = response.get_json()["data"]
    assert data["id"] is None
    assert data["blog_id"] == blogs.first.id
    assert data["author"] == "alice"


def test_form_create_redirects_with_a_notice(client, blogs):
    response = client.post(_posts_url(blogs.first), data={"post[title]": "From a form"})

    assert response.status_code == 303
    assert f"/blogs/{blogs.first.id}/posts/" in response.headers["Location"]
    with client.session_transaction() as session:
        assert ("message", "Post created") in session["_flashes"]


def test_destroy(client, blogs, models):
    post_id = blogs.first.posts[0].id

    response = client.delete(_posts_url(blogs.first, post_id), headers={"Accept": "application/json"})

    assert response.status_code == 204
    assert models.db.session.get(models.Post, post_id) is None


def test_form_destroy_uses_the_method_field(client, blogs, models):
    post_id = blogs.first.posts[0].id

    response = client.post(_posts_url(blogs.first, post_id), data={"_method": "DELETE"})

    assert response.status_code == 303
    assert response.headers["Location"].endswith(_posts_url(blogs.first))
    assert models.db.session.get(models.Post, post_id) is None
    with client.session_transaction() as session:
        assert ("message", "Post deleted") in session["_flashes"]


def test_unrouted_method(client, blogs):
    post_id = blogs.first.posts[0].id

    assert client.post(_posts_url(blogs.first, post_id)).status_code == 405
    assert client.patch(_posts_url(blogs.first, post_id), json={"post": {"title": "x"}}).status_code == 405


def test_constraint_violation_is_a_base_error(client, blogs, models):
    url = f"/blogs/{blogs.first.id}/setting"
    assert client.post(url, json={"setting": {"theme": "dark"}}).status_code == 201

    response = client.post(url, json={"setting": {"theme": "light"}})

    assert response.status_code == 422
    body = response.get_json()
    assert list(body["errors"]) == ["base"]
    assert body["meta"]["action"] == "new"
    settings = models.db.session.query(models.Setting).filter_by(blog_id=blogs.first.id).all()
    assert [setting.theme for setting in settings] == ["dark"]


def test_destroy_failure_is_a_server_error(client, blogs, models, monkeypatch):
    post_id = blogs.first.posts[0].id

    def failing_flush(*args, **kwargs):
        raise sqlalchemy.exc.OperationalError("DELETE FROM posts", {}, Exception("database is locked"))

    monkeypatch.setattr(models.db.session, "flush", failing_flush)
    response = client.delete(_posts_url(blogs.first, post_id), headers={"Accept": "application/json"})
    monkeypatch.undo()

    assert response.status_code == 500
    assert response.get_json()["errors"][0]["code"] == "500"
    assert models.db.session.get(models.Post, post_id) is not None


def test_weak_new_and_create_merge_into_the_parent(make_client, models):
    routes = RouteMapper()
    with routes.resources("blogs", only=["show"]):
        routes.create("appearance")
    client = make_client(routes)
    blog = models.Blog(title="First")
    private = models.Blog(title="Private", owner="bob")
    models.db.session.add_all([blog, private])
    models.db.session.commit()
    url = f"/blogs/{blog.id}/appearance"

    response = client.get(f"{url}/new")
    assert response.status_code == 200
    assert response.get_json()["data"]["id"] == blog.id

    response = client.post(url, json={"blog": {"title": "Merged"}})
    assert response.status_code == 201
    assert response.headers["Location"].endswith(f"/blogs/{blog.id}")
    assert models.db.session.query(models.Blog).count() == 2
    assert client.get(f"/blogs/{blog.id}").get_json()["data"]["title"] == "Merged"

    private_url = f"/blogs/{private.id}/appearance"
    assert client.post(private_url, json={"blog": {"title": "Mine"}}, headers={"X-Actor": "alice"}).status_code == 403
    assert client.post(private_url, json={"blog": {"title": "Mine"}}, headers={"X-Actor": "bob"}).status_code == 201
