"""
GraphQL documents for the Shopify Admin API.

Each list document takes ``$limit`` and ``$cursor`` and returns one page of
``edges { node }`` plus ``pageInfo { hasNextPage endCursor }``. Nested
sub-lists are bounded (variants 10, images 5, line items 20) so a page has a
predictable query cost.
"""

PRODUCTS_QUERY = """
query($limit: Int!, $cursor: String) {
  products(first: $limit, after: $cursor) {
    edges {
      node {
        id
        title
        descriptionHtml
        vendor
        productType
        status
        tags
        publishedAt
        variants(first: 10) {
          edges {
            node {
              id
              title
              price
              sku
            }
          }
        }
        images(first: 5) {
          edges {
            node {
              id
              url
              altText
            }
          }
        }
      }
      cursor
    }
    pageInfo {
      hasNextPage
      endCursor
    }
  }
}
"""

COLLECTIONS_QUERY = """
query($limit: Int!, $cursor: String) {
  collections(first: $limit, after: $cursor) {
    edges {
      node {
        id
        title
        descriptionHtml
        handle
        productsCount
        publishedAt
      }
      cursor
    }
    pageInfo {
      hasNextPage
      endCursor
    }
  }
}
"""

ORDERS_QUERY = """
query($limit: Int!, $cursor: String) {
  orders(first: $limit, after: $cursor) {
    edges {
      node {
        id
        name
        email
        totalPriceSet {
          shopMoney {
            amount
            currencyCode
          }
        }
        displayFinancialStatus
        displayFulfillmentStatus
        processedAt
        lineItems(first: 20) {
          edges {
            node {
              id
              title
              quantity
              variant {
                id
                price
              }
            }
          }
        }
        customer {
          id
          firstName
          lastName
          email
        }
      }
      cursor
    }
    pageInfo {
      hasNextPage
      endCursor
    }
  }
}
"""

WEBHOOK_SUBSCRIPTION_CREATE = """
mutation webhookSubscriptionCreate($topic: WebhookSubscriptionTopic!, $webhookSubscription: WebhookSubscriptionInput!) {
  webhookSubscriptionCreate(topic: $topic, webhookSubscription: $webhookSubscription) {
    webhookSubscription {
      id
      topic
      endpoint {
        __typename
        ... on WebhookHttpEndpoint {
          callbackUrl
        }
      }
    }
    userErrors {
      field
      message
    }
  }
}
"""
