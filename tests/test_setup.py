from http import HTTPStatus

import pytest

from bilty import setup


class FakeResponse:
    def __init__(self, status_code: int):
        self.status_code = status_code


def test_post_sends_a_fresh_header_each_call(monkeypatch):
    sentHeaders = []

    def fakePost(url, headers, **kwargs):
        headers["X-Seen"] = url
        sentHeaders.append(headers)
        return FakeResponse(HTTPStatus.CREATED)

    monkeypatch.setattr(setup, "post", fakePost)
    setup.POST("http://localhost/first")
    setup.POST("http://localhost/second")
    assert sentHeaders == [
        {"X-Seen": "http://localhost/first"},
        {"X-Seen": "http://localhost/second"},
    ]


def test_post_rejects_unexpected_status(monkeypatch):
    monkeypatch.setattr(
        setup, "post", lambda url, headers, **kwargs: FakeResponse(HTTPStatus.OK)
    )
    with pytest.raises(AssertionError):
        setup.POST("http://localhost/seller", header={"Authorization": "Bearer x"})
