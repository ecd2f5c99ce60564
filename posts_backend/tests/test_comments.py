from __future__ import annotations

from posts_api.core import errors


MISSING = {"errorMessage": errors.COMMENT_MISSING_TEXT}
NOT_FOUND = {"message": errors.POST_NOT_FOUND}


def test_create_comment(client, post):
    res = client.post(f"/api/posts/{post['id']}/comments", json={"text": "nice"})
    assert res.status_code == 201
    body = res.json()
    assert body["text"] == "nice"
    assert body["post_id"] == post["id"]
    assert isinstance(body["id"], int)


def test_create_comment_ignores_body_post_id(client, post):
    other = client.post("/api/posts", json={"title": "Other", "contents": "x"}).json()
    res = client.post(f"/api/posts/{post['id']}/comments", json={"text": "hi", "post_id": other["id"]})
    assert res.status_code == 201
    assert res.json()["post_id"] == post["id"]
    assert client.get(f"/api/posts/{other['id']}/comments").status_code == 404


def test_create_comment_missing_text(client, post):
    for payload in ({}, {"text": ""}, {"text": None}):
        res = client.post(f"/api/posts/{post['id']}/comments", json=payload)
        assert res.status_code == 400
        assert res.json() == MISSING
    assert client.get(f"/api/posts/{post['id']}/comments").status_code == 404


def test_create_comment_missing_text_on_unknown_post(client):
    res = client.post("/api/posts/999/comments", json={})
    assert res.status_code == 400
    assert res.json() == MISSING


def test_create_comment_malformed_body(client, post):
    res = client.post(f"/api/posts/{post['id']}/comments", json=["text"])
    assert res.status_code == 400
    assert res.json() == MISSING


def test_create_comment_validation_skips_store(make_client):
    c, double = make_client()
    res = c.post("/api/posts/1/comments", json={"post_id": 1})
    assert res.status_code == 400
    assert double.calls == []


def test_create_comment_unknown_post(client):
    res = client.post("/api/posts/999/comments", json={"text": "hello"})
    assert res.status_code == 404
    assert res.json() == NOT_FOUND


def test_create_comment_lookup_failure(make_client):
    c, double = make_client("get_post")
    res = c.post("/api/posts/1/comments", json={"text": "hello"})
    assert res.status_code == 500
    assert res.json() == {"error": errors.POSTS_RETRIEVAL}
    assert "create_comment" not in double.calls


def test_create_comment_save_failure(make_client):
    c, _ = make_client("create_comment")
    pid = c.post("/api/posts", json={"title": "T", "contents": "C"}).json()["id"]
    res = c.post(f"/api/posts/{pid}/comments", json={"text": "hello"})
    assert res.status_code == 500
    assert res.json() == {"error": errors.COMMENT_SAVE}


def test_create_comment_refetch_failure(make_client):
    c, double = make_client("get_comment")
    pid = c.post("/api/posts", json={"title": "T", "contents": "C"}).json()["id"]
    res = c.post(f"/api/posts/{pid}/comments", json={"text": "hello"})
    assert res.status_code == 500
    assert res.json() == {"error": errors.COMMENTS_RETRIEVAL}
    assert double.calls[-3:] == ["get_post", "create_comment", "get_comment"]


def test_list_comments(client, post):
    for text in ("one", "two"):
        client.post(f"/api/posts/{post['id']}/comments", json={"text": text})
    res = client.get(f"/api/posts/{post['id']}/comments")
    assert res.status_code == 200
    body = res.json()
    assert [c["text"] for c in body] == ["one", "two"]
    assert {c["post_id"] for c in body} == {post["id"]}


def test_list_comments_empty_post_is_not_found(client, post):
    res = client.get(f"/api/posts/{post['id']}/comments")
    assert res.status_code == 404
    assert res.json() == NOT_FOUND


def test_list_comments_unknown_post(client):
    res = client.get("/api/posts/999/comments")
    assert res.status_code == 404
    assert res.json() == NOT_FOUND


def test_list_comments_store_failure(make_client):
    c, _ = make_client("list_comments_for_post")
    res = c.get("/api/posts/1/comments")
    assert res.status_code == 500
    assert res.json() == {"error": errors.COMMENTS_RETRIEVAL}


def test_deleted_post_drops_its_comments(client, post):
    client.post(f"/api/posts/{post['id']}/comments", json={"text": "bye"})
    assert client.delete(f"/api/posts/{post['id']}").status_code == 204
    assert client.get(f"/api/posts/{post['id']}/comments").status_code == 404
