"""Shopify Admin GraphQL client used by the sync orchestrator."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

import requests

from .configuration import TarjamaConfig
from .errors import ConfigurationError, InvalidInput, NotFound, UpstreamUnavailable
from .structures import CatalogResource, RegistrationOutcome, TranslationInput, UpdateOutcome

logger = logging.getLogger(__name__)

RESOURCE_FIELDS = """
    id
    handle
    title
    descriptionHtml
    seo {
      title
      description
    }
"""

RESOURCE_BY_HANDLE = {
    "product": (
        "productByHandle",
        "query productByHandle($handle: String!) {\n"
        "  productByHandle(handle: $handle) {" + RESOURCE_FIELDS + "  }\n"
        "}",
    ),
    "collection": (
        "collectionByHandle",
        "query collectionByHandle($handle: String!) {\n"
        "  collectionByHandle(handle: $handle) {" + RESOURCE_FIELDS + "  }\n"
        "}",
    ),
}

RESOURCE_LISTING = {
    "product": "products",
    "collection": "collections",
}

TRANSLATABLE_CONTENT_QUERY = """
query translatableResource($resourceId: ID!) {
  translatableResource(resourceId: $resourceId) {
    resourceId
    translatableContent {
      key
      digest
      locale
    }
  }
}
"""

TRANSLATIONS_REGISTER_MUTATION = """
mutation translationsRegister($resourceId: ID!, $translations: [TranslationInput!]!) {
  translationsRegister(resourceId: $resourceId, translations: $translations) {
    translations {
      key
      locale
      value
    }
    userErrors {
      field
      message
    }
  }
}
"""


BLOG_LISTING_QUERY = """
query listBlogs($first: Int!) {
  blogs(first: $first) {
    edges { node { id handle title } }
  }
}
"""

ARTICLE_LISTING_QUERY = """
query listBlogArticles($blogs: Int!, $articles: Int!) {
  blogs(first: $blogs) {
    edges {
      node {
        id
        title
        handle
        articles(first: $articles) {
          edges {
            node {
              id
              handle
              title
              seo {
                title
                description
              }
            }
          }
        }
      }
    }
  }
}
"""

_SEO_RESULT_FIELDS = """
      id
      title
      handle
      seo {
        title
        description
      }
"""

# resource type -> (mutation field, input argument, result field, document)
SEO_UPDATES = {
    "product": (
        "productUpdate",
        "input",
        "product",
        "mutation productUpdate($input: ProductInput!) {\n"
        "  productUpdate(input: $input) {\n"
        "    product {" + _SEO_RESULT_FIELDS + "      descriptionHtml\n    }\n"
        "    userErrors { field message }\n"
        "  }\n"
        "}",
    ),
    "collection": (
        "collectionUpdate",
        "input",
        "collection",
        "mutation collectionUpdate($input: CollectionInput!) {\n"
        "  collectionUpdate(input: $input) {\n"
        "    collection {" + _SEO_RESULT_FIELDS + "    }\n"
        "    userErrors { field message }\n"
        "  }\n"
        "}",
    ),
    "article": (
        "onlineStoreArticleUpdate",
        "article",
        "article",
        "mutation onlineStoreArticleUpdate($article: OnlineStoreArticleInput!) {\n"
        "  onlineStoreArticleUpdate(article: $article) {\n"
        "    article {" + _SEO_RESULT_FIELDS + "    }\n"
        "    userErrors { field message }\n"
        "  }\n"
        "}",
    ),
}


def supported_resource_types() -> List[str]:
    return sorted(RESOURCE_BY_HANDLE)


def seo_resource_types() -> List[str]:
    return sorted(SEO_UPDATES)


def _check_page_size(value: int, name: str = "first") -> None:
    if not 1 <= value <= 250:
        raise InvalidInput(f"{name} must be between 1 and 250.")


class ShopifyAdminClient:
    """Thin wrapper over the Admin GraphQL endpoint.

    Every failure at the transport or status level is raised as
    ``UpstreamUnavailable``; the client never retries.
    """

    def __init__(
        self,
        *,
        store_domain: str,
        access_token: str,
        api_version: str = "2024-07",
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.endpoint = f"https://{store_domain}/admin/api/{api_version}/graphql.json"
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Content-Type": "application/json",
                "X-Shopify-Access-Token": access_token,
            }
        )

    @classmethod
    def from_settings(
        cls,
        settings: TarjamaConfig,
        *,
        session: Optional[requests.Session] = None,
    ) -> "ShopifyAdminClient":
        missing = [
            name
            for name, value in {
                "SHOPIFY_STORE_DOMAIN": settings.SHOPIFY_STORE_DOMAIN,
                "SHOPIFY_ADMIN_TOKEN": settings.SHOPIFY_ADMIN_TOKEN,
            }.items()
            if not value
        ]
        if missing:
            raise ConfigurationError(
                "Missing Shopify settings. Please set: " + ", ".join(missing) + "."
            )
        return cls(
            store_domain=settings.SHOPIFY_STORE_DOMAIN,  # type: ignore[arg-type]
            access_token=settings.SHOPIFY_ADMIN_TOKEN,  # type: ignore[arg-type]
            api_version=settings.SHOPIFY_API_VERSION,
            timeout=settings.SHOPIFY_TIMEOUT,
            session=session,
        )

    def execute(
        self,
        query: str,
        variables: Optional[Dict[str, Any]] = None,
        *,
        operation: str,
    ) -> Dict[str, Any]:
        """Run a GraphQL document and return its ``data`` object."""

        body: Dict[str, Any] = {"query": query}
        if variables:
            body["variables"] = variables

        try:
            response = self.session.post(self.endpoint, json=body, timeout=self.timeout)
        except requests.exceptions.RequestException as exc:
            logger.error("Network error during Shopify %s: %s", operation, exc)
            raise UpstreamUnavailable(
                f"Shopify {operation} request failed: {exc}"
            ) from exc

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if response.status_code >= 400 or not isinstance(payload, dict):
            logger.error(
                "Shopify %s failed with status %s: %s",
                operation,
                response.status_code,
                response.text[:500],
            )
            raise UpstreamUnavailable(
                f"Shopify {operation} API error",
                details={"status": response.status_code, "body": payload or response.text},
            )

        if payload.get("errors"):
            logger.error("Shopify %s returned errors: %s", operation, payload["errors"])
            raise UpstreamUnavailable(
                f"Shopify {operation} API error",
                details={"status": response.status_code, "errors": payload["errors"]},
            )

        return payload.get("data") or {}

    def fetch_resource(self, handle: str, resource_type: str = "product") -> CatalogResource:
        """Look up a resource by handle; raise ``NotFound`` when there is none."""

        try:
            field, query = RESOURCE_BY_HANDLE[resource_type]
        except KeyError as exc:
            raise InvalidInput(
                f"Unsupported resource type '{resource_type}'.",
                details={"supported": supported_resource_types()},
            ) from exc

        data = self.execute(query, {"handle": handle}, operation=field)
        node = data.get(field)
        if not node:
            raise NotFound(f'No {resource_type} found for handle "{handle}"')
        if not node.get("id"):
            raise UpstreamUnavailable(
                f"Shopify {field} returned a {resource_type} without an id",
                details={"node": node},
            )

        seo = node.get("seo") or {}
        resource = CatalogResource(
            resource_type=resource_type,
            id=node["id"],
            handle=node.get("handle") or handle,
            title=node.get("title") or "",
            description_html=node.get("descriptionHtml") or "",
            seo_title=seo.get("title") or "",
            seo_description=seo.get("description") or "",
        )
        logger.info("Fetched %s %s (%s)", resource_type, resource.handle, resource.id)
        return resource

    def fetch_digests(self, resource_id: str) -> Dict[str, str]:
        """Return the translatable content digests of a resource, keyed by field."""

        data = self.execute(
            TRANSLATABLE_CONTENT_QUERY,
            {"resourceId": resource_id},
            operation="translatableResource",
        )
        resource = data.get("translatableResource") or {}
        digests: Dict[str, str] = {}
        for item in resource.get("translatableContent") or []:
            key = item.get("key")
            digest = item.get("digest")
            if key and digest:
                digests[key] = digest
        return digests

    def register_translations(
        self,
        resource_id: str,
        translations: Sequence[TranslationInput],
    ) -> RegistrationOutcome:
        """Submit translations; field-level rejections are returned, not raised."""

        data = self.execute(
            TRANSLATIONS_REGISTER_MUTATION,
            {
                "resourceId": resource_id,
                "translations": [item.to_payload() for item in translations],
            },
            operation="translationsRegister",
        )
        result = data.get("translationsRegister") or {}
        outcome = RegistrationOutcome(
            translations=list(result.get("translations") or []),
            user_errors=list(result.get("userErrors") or []),
        )
        if outcome.user_errors:
            logger.warning(
                "translationsRegister userErrors for %s: %s",
                resource_id,
                outcome.user_errors,
            )
        return outcome

    def list_resources(
        self,
        resource_type: str = "product",
        *,
        first: int = 100,
    ) -> List[Dict[str, Any]]:
        """List ``{id, handle, title}`` for the first resources of a type."""

        field = RESOURCE_LISTING.get(resource_type)
        if field is None:
            raise InvalidInput(
                f"Unsupported resource type '{resource_type}'.",
                details={"supported": supported_resource_types()},
            )
        _check_page_size(first)

        query = (
            f"query list($first: Int!) {{\n"
            f"  {field}(first: $first) {{\n"
            "    edges { node { id handle title } }\n"
            "  }\n"
            "}"
        )
        data = self.execute(query, {"first": first}, operation=field)
        edges = (data.get(field) or {}).get("edges") or []
        return [edge["node"] for edge in edges if edge.get("node")]

    def list_blogs(self, *, first: int = 10) -> List[Dict[str, Any]]:
        """List ``{id, handle, title}`` for the store's blogs."""

        _check_page_size(first)
        data = self.execute(BLOG_LISTING_QUERY, {"first": first}, operation="blogs")
        edges = (data.get("blogs") or {}).get("edges") or []
        return [edge["node"] for edge in edges if edge.get("node")]

    def list_articles(self, *, blogs: int = 10, articles: int = 50) -> List[Dict[str, Any]]:
        """Flatten the articles of the first blogs, tagged with their blog title."""

        _check_page_size(blogs, "blogs")
        _check_page_size(articles, "articles")
        data = self.execute(
            ARTICLE_LISTING_QUERY,
            {"blogs": blogs, "articles": articles},
            operation="listBlogArticles",
        )
        flattened: List[Dict[str, Any]] = []
        for blog_edge in (data.get("blogs") or {}).get("edges") or []:
            blog = blog_edge.get("node") or {}
            for article_edge in (blog.get("articles") or {}).get("edges") or []:
                article = article_edge.get("node")
                if not article:
                    continue
                seo = article.get("seo") or {}
                flattened.append(
                    {
                        "id": article.get("id"),
                        "handle": article.get("handle"),
                        "title": article.get("title"),
                        "blogTitle": blog.get("title"),
                        "seoTitle": seo.get("title") or None,
                        "seoDescription": seo.get("description") or None,
                    }
                )
        return flattened

    def update_seo(
        self,
        resource_type: str,
        resource_id: str,
        *,
        seo_title: Optional[str] = None,
        seo_description: Optional[str] = None,
        description_html: Optional[str] = None,
    ) -> UpdateOutcome:
        """Overwrite the SEO fields (and, for products, the body) in place.

        Unlike ``register_translations`` this edits the resource itself,
        not a locale-specific translation of it.
        """

        try:
            field, argument, result_field, mutation = SEO_UPDATES[resource_type]
        except KeyError as exc:
            raise InvalidInput(
                f"Unsupported resource type '{resource_type}'.",
                details={"supported": seo_resource_types()},
            ) from exc
        if not isinstance(resource_id, str) or not resource_id.strip():
            raise InvalidInput(f"Missing required field: {resource_type} id")
        if description_html is not None and resource_type != "product":
            raise InvalidInput("descriptionHtml can only be updated on products.")
        if seo_title is None and seo_description is None and description_html is None:
            raise InvalidInput("Nothing to update: pass an SEO title, SEO description or body.")

        payload: Dict[str, Any] = {
            "id": resource_id.strip(),
            "seo": {
                "title": seo_title or None,
                "description": seo_description or None,
            },
        }
        if description_html is not None:
            payload["descriptionHtml"] = description_html

        data = self.execute(mutation, {argument: payload}, operation=field)
        result = data.get(field) or {}
        outcome = UpdateOutcome(
            resource=result.get(result_field),
            user_errors=list(result.get("userErrors") or []),
        )
        if outcome.user_errors:
            logger.warning("%s userErrors for %s: %s", field, resource_id, outcome.user_errors)
        else:
            logger.info("Updated SEO of %s %s", resource_type, resource_id)
        return outcome
