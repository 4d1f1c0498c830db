import json

import pytest
import requests

from tarjama.commerce import ShopifyAdminClient
from tarjama.configuration import TarjamaConfig
from tarjama.errors import ConfigurationError, InvalidInput, NotFound, UpstreamUnavailable
from tarjama.structures import TranslationInput


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=None):
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else json.dumps(payload)

    def json(self):
        if self._payload is None:
            raise ValueError("no JSON")
        return self._payload


class FakeSession:
    def __init__(self, *responses):
        self.headers = {}
        self.responses = list(responses)
        self.requests = []

    def post(self, url, json=None, timeout=None):
        self.requests.append({"url": url, "json": json, "timeout": timeout})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def make_client(*responses):
    session = FakeSession(*responses)
    client = ShopifyAdminClient(
        store_domain="demo.myshopify.com",
        access_token="shpat_test",
        session=session,
    )
    return client, session


PRODUCT = {
    "id": "gid://shopify/Product/1",
    "handle": "diver-200",
    "title": "Diver 200",
    "descriptionHtml": "<p>Hello</p>",
    "seo": {"title": None, "description": "Automatic diver"},
}


def test_fetch_resource_maps_product_fields():
    client, session = make_client(FakeResponse(payload={"data": {"productByHandle": PRODUCT}}))

    resource = client.fetch_resource("diver-200")

    assert resource.id == "gid://shopify/Product/1"
    assert resource.description_html == "<p>Hello</p>"
    assert resource.seo_title == ""
    assert resource.seo_description == "Automatic diver"
    request = session.requests[0]
    assert request["url"] == "https://demo.myshopify.com/admin/api/2024-07/graphql.json"
    assert request["json"]["variables"] == {"handle": "diver-200"}
    assert session.headers["X-Shopify-Access-Token"] == "shpat_test"


def test_fetch_collection_uses_collection_query():
    node = dict(PRODUCT, id="gid://shopify/Collection/9")
    client, session = make_client(FakeResponse(payload={"data": {"collectionByHandle": node}}))

    resource = client.fetch_resource("divers", "collection")

    assert resource.resource_type == "collection"
    assert "collectionByHandle" in session.requests[0]["json"]["query"]


def test_fetch_resource_missing_is_not_found():
    client, _ = make_client(FakeResponse(payload={"data": {"productByHandle": None}}))

    with pytest.raises(NotFound):
        client.fetch_resource("ghost")


def test_unknown_resource_type_is_invalid_input():
    client, session = make_client()

    with pytest.raises(InvalidInput):
        client.fetch_resource("x", "blog")
    assert session.requests == []


def test_graphql_errors_are_upstream_failures():
    client, _ = make_client(FakeResponse(payload={"errors": [{"message": "Throttled"}]}))

    with pytest.raises(UpstreamUnavailable) as excinfo:
        client.fetch_resource("diver-200")

    assert excinfo.value.details["errors"] == [{"message": "Throttled"}]


def test_http_status_errors_are_upstream_failures():
    client, _ = make_client(FakeResponse(status_code=401, payload=None, text="Unauthorized"))

    with pytest.raises(UpstreamUnavailable) as excinfo:
        client.fetch_resource("diver-200")

    assert excinfo.value.details["status"] == 401


def test_transport_errors_are_upstream_failures():
    client, _ = make_client(requests.exceptions.ConnectionError("refused"))

    with pytest.raises(UpstreamUnavailable):
        client.fetch_resource("diver-200")


def test_fetch_digests_keys_by_field():
    payload = {
        "data": {
            "translatableResource": {
                "resourceId": "gid://shopify/Product/1",
                "translatableContent": [
                    {"key": "title", "digest": "abc", "locale": "en"},
                    {"key": "body_html", "digest": "def", "locale": "en"},
                    {"key": "meta_title", "digest": None, "locale": "en"},
                ],
            }
        }
    }
    client, _ = make_client(FakeResponse(payload=payload))

    assert client.fetch_digests("gid://shopify/Product/1") == {"title": "abc", "body_html": "def"}


def test_register_translations_returns_user_errors():
    payload = {
        "data": {
            "translationsRegister": {
                "translations": [],
                "userErrors": [{"field": ["translations", "0", "key"], "message": "Key is invalid"}],
            }
        }
    }
    client, session = make_client(FakeResponse(payload=payload))

    outcome = client.register_translations(
        "gid://shopify/Product/1",
        [TranslationInput(key="title", value="ساعة", locale="ar", digest="abc")],
    )

    assert not outcome.accepted
    assert outcome.user_errors[0]["message"] == "Key is invalid"
    sent = session.requests[0]["json"]["variables"]["translations"]
    assert sent == [
        {"key": "title", "value": "ساعة", "locale": "ar", "translatableContentDigest": "abc"}
    ]


def test_list_resources_returns_nodes():
    payload = {
        "data": {
            "products": {
                "edges": [
                    {"node": {"id": "1", "handle": "a", "title": "A"}},
                    {"node": {"id": "2", "handle": "b", "title": "B"}},
                ]
            }
        }
    }
    client, session = make_client(FakeResponse(payload=payload))

    nodes = client.list_resources(first=2)

    assert [node["handle"] for node in nodes] == ["a", "b"]
    assert session.requests[0]["json"]["variables"] == {"first": 2}


def test_list_resources_bounds_first():
    client, _ = make_client()

    with pytest.raises(InvalidInput):
        client.list_resources(first=0)


def test_from_settings_requires_credentials():
    with pytest.raises(ConfigurationError) as excinfo:
        ShopifyAdminClient.from_settings(TarjamaConfig(SHOPIFY_STORE_DOMAIN="demo.myshopify.com"))

    assert "SHOPIFY_ADMIN_TOKEN" in str(excinfo.value)


def test_from_settings_uses_api_version():
    settings = TarjamaConfig(
        SHOPIFY_STORE_DOMAIN="https://demo.myshopify.com/",
        SHOPIFY_ADMIN_TOKEN="t",
        SHOPIFY_API_VERSION="2025-01",
    )

    client = ShopifyAdminClient.from_settings(settings, session=FakeSession())

    assert client.endpoint == "https://demo.myshopify.com/admin/api/2025-01/graphql.json"


def test_fetch_resource_without_id_is_upstream_failure():
    node = {key: value for key, value in PRODUCT.items() if key != "id"}
    client, _ = make_client(FakeResponse(payload={"data": {"productByHandle": node}}))

    with pytest.raises(UpstreamUnavailable):
        client.fetch_resource("diver-200")


def test_list_blogs_returns_nodes():
    payload = {
        "data": {
            "blogs": {"edges": [{"node": {"id": "gid://shopify/Blog/1", "handle": "news", "title": "News"}}]}
        }
    }
    client, session = make_client(FakeResponse(payload=payload))

    blogs = client.list_blogs(first=5)

    assert blogs == [{"id": "gid://shopify/Blog/1", "handle": "news", "title": "News"}]
    assert session.requests[0]["json"]["variables"] == {"first": 5}


def test_list_articles_flattens_blogs():
    payload = {
        "data": {
            "blogs": {
                "edges": [
                    {
                        "node": {
                            "id": "gid://shopify/Blog/1",
                            "title": "News",
                            "handle": "news",
                            "articles": {
                                "edges": [
                                    {
                                        "node": {
                                            "id": "gid://shopify/Article/3",
                                            "handle": "care-guide",
                                            "title": "Care guide",
                                            "seo": {"title": "", "description": "How to"},
                                        }
                                    }
                                ]
                            },
                        }
                    },
                    {"node": {"id": "gid://shopify/Blog/2", "title": "Empty", "articles": None}},
                ]
            }
        }
    }
    client, session = make_client(FakeResponse(payload=payload))

    articles = client.list_articles(blogs=2, articles=10)

    assert articles == [
        {
            "id": "gid://shopify/Article/3",
            "handle": "care-guide",
            "title": "Care guide",
            "blogTitle": "News",
            "seoTitle": None,
            "seoDescription": "How to",
        }
    ]
    assert session.requests[0]["json"]["variables"] == {"blogs": 2, "articles": 10}


def test_update_seo_sends_product_update():
    result = {
        "productUpdate": {
            "product": {"id": "gid://shopify/Product/1", "seo": {"title": "Diver", "description": None}},
            "userErrors": [],
        }
    }
    client, session = make_client(FakeResponse(payload={"data": result}))

    outcome = client.update_seo(
        "product",
        "gid://shopify/Product/1",
        seo_title="Diver",
        seo_description="",
        description_html="<p>New</p>",
    )

    assert outcome.accepted
    assert outcome.resource["id"] == "gid://shopify/Product/1"
    sent = session.requests[0]["json"]
    assert "productUpdate(input: $input)" in sent["query"]
    assert sent["variables"] == {
        "input": {
            "id": "gid://shopify/Product/1",
            "seo": {"title": "Diver", "description": None},
            "descriptionHtml": "<p>New</p>",
        }
    }


def test_update_seo_uses_article_mutation_and_returns_user_errors():
    result = {
        "onlineStoreArticleUpdate": {
            "article": None,
            "userErrors": [{"field": ["article", "seo"], "message": "Title is too long"}],
        }
    }
    client, session = make_client(FakeResponse(payload={"data": result}))

    outcome = client.update_seo("article", "gid://shopify/Article/3", seo_title="x" * 500)

    assert not outcome.accepted
    assert outcome.resource is None
    assert outcome.user_errors[0]["message"] == "Title is too long"
    sent = session.requests[0]["json"]
    assert "onlineStoreArticleUpdate(article: $article)" in sent["query"]
    assert sent["variables"]["article"]["id"] == "gid://shopify/Article/3"


@pytest.mark.parametrize(
    "resource_type, resource_id, kwargs",
    [
        ("blog", "gid://shopify/Blog/1", {"seo_title": "x"}),
        ("collection", "", {"seo_title": "x"}),
        ("collection", "gid://shopify/Collection/9", {}),
        ("collection", "gid://shopify/Collection/9", {"description_html": "<p>x</p>"}),
    ],
)
def test_update_seo_rejects_bad_requests_without_calling(resource_type, resource_id, kwargs):
    client, session = make_client()

    with pytest.raises(InvalidInput):
        client.update_seo(resource_type, resource_id, **kwargs)
    assert session.requests == []
