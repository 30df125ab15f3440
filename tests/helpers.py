"""
Test doubles and payload builders shared across test modules
"""

SHOP_DOMAIN = "test-shop.myshopify.com"
SHOP_TOKEN = "shpat_test_token"


def product_node(external_id, title="Product", status="ACTIVE", **extra):
    """GraphQL product node as returned by PRODUCTS_QUERY."""
    node = {
        "id": f"gid://shopify/Product/{external_id}",
        "title": title,
        "descriptionHtml": "<p>desc</p>",
        "vendor": "Acme",
        "productType": "Shirts",
        "status": status,
        "tags": ["summer", "sale"],
        "variants": {"edges": [{"node": {"id": f"gid://shopify/ProductVariant/{external_id}1", "title": "Default", "price": "19.99", "sku": f"SKU-{external_id}"}}]},
        "images": {"edges": [{"node": {"id": f"gid://shopify/ProductImage/{external_id}2", "url": "https://cdn.test/a.png", "altText": "front"}}]},
        "publishedAt": "2024-01-15T10:00:00Z",
    }
    node.update(extra)
    return node


class FakeShopifyClient:
    """
    Scripted stand-in for ShopifyGraphQLClient. `pages` maps a connection root
    (products/collections/orders) to a list of node lists; cursors are page indexes.
    `failures` maps (root, page_index) to an exception to raise or a GraphQL error list to return.
    """

    def __init__(self, pages=None, failures=None, user_errors=None):
        self.pages = pages or {}
        self.failures = failures or {}
        self.user_errors = user_errors or {}
        self.calls = []
        self.subscriptions = []

    def _page(self, root, limit, cursor):
        index = int(cursor) if cursor else 0
        self.calls.append((root, limit, cursor))
        failure = self.failures.get((root, index))
        if isinstance(failure, Exception):
            raise failure
        if failure is not None:
            return {"errors": failure}
        pages = self.pages.get(root) or [[]]
        has_next = index < len(pages) - 1
        return {
            "data": {
                root: {
                    "edges": [{"node": node} for node in pages[index]],
                    "pageInfo": {"hasNextPage": has_next, "endCursor": str(index + 1) if has_next else None},
                }
            }
        }

    async def fetch_products(self, shop, limit=50, cursor=None):
        return self._page("products", limit, cursor)

    async def fetch_collections(self, shop, limit=50, cursor=None):
        return self._page("collections", limit, cursor)

    async def fetch_orders(self, shop, limit=50, cursor=None):
        return self._page("orders", limit, cursor)

    async def create_webhook_subscription(self, shop, topic, callback_url):
        self.subscriptions.append((topic, callback_url))
        return self.user_errors.get(topic, [])
