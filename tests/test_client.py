import pytest

from client.api import BlogClient, BlogClientError


@pytest.fixture()
def blog(make_client):
    return BlogClient("http://testserver", session=make_client())


def test_full_session(blog):
    blog.register("alice", "pw1")
    assert blog.login("alice", "pw1")["username"] == "alice"
    assert blog.profile()["username"] == "alice"
    assert blog.username == "alice"

    post = blog.create_post("T", "S", "C", file=("cover.png", b"img"))
    assert post["cover"].endswith("-cover.png")

    edited = blog.edit_post(post["_id"], "T2", "S2", "C2")
    assert edited["title"] == "T2"
    assert edited["cover"] == post["cover"]

    assert [p["_id"] for p in blog.list_posts()] == [post["_id"]]
    assert blog.get_post(post["_id"])["author"]["username"] == "alice"

    blog.logout()
    assert blog.user_info is None
    assert blog.profile() is None


def test_wrong_credentials_raise(blog):
    blog.register("alice", "pw1")
    with pytest.raises(BlogClientError) as excinfo:
        blog.login("alice", "wrong")
    assert excinfo.value.code == 400


def test_non_author_edit_raises(make_client):
    alice = BlogClient("http://testserver", session=make_client())
    bob = BlogClient("http://testserver", session=make_client())
    alice.register("alice", "pw1")
    alice.login("alice", "pw1")
    bob.register("bob", "pw2")
    bob.login("bob", "pw2")
    post = alice.create_post("T", "S", "C")

    with pytest.raises(BlogClientError) as excinfo:
        bob.edit_post(post["_id"], "X", "X", "X")

    assert excinfo.value.message == "You are not the author"
    assert bob.get_post(post["_id"])["content"] == "C"
