"""GraphQL documents for the Vendure shop API."""

from dataclasses import dataclass


@dataclass(frozen=True)
class GraphQLQuery:
    """A named GraphQL operation."""

    name: str
    document: str


_COLLECTION_FIELDS = """
    id
    name
    slug
    description
    featuredAsset {
        id
        preview
    }
"""

GET_TOP_COLLECTIONS = GraphQLQuery(
    name="GetTopCollections",
    document=f"""
query GetTopCollections {{
    collections(options: {{ topLevelOnly: true }}) {{
        items {{{_COLLECTION_FIELDS}}}
    }}
}}
""",
)

GET_COLLECTION_WITH_CHILDREN = GraphQLQuery(
    name="GetCollectionWithChildren",
    document=f"""
query GetCollectionWithChildren($id: ID, $slug: String) {{
    collection(id: $id, slug: $slug) {{{_COLLECTION_FIELDS}
        breadcrumbs {{
            id
            name
            slug
        }}
        children {{{_COLLECTION_FIELDS}}}
    }}
}}
""",
)

GET_COLLECTION_PRODUCTS = GraphQLQuery(
    name="GetCollectionProducts",
    document=f"""
query GetCollectionProducts($slug: String, $input: SearchInput!) {{
    collection(slug: $slug) {{{_COLLECTION_FIELDS}
        breadcrumbs {{
            id
            name
            slug
        }}
        children {{{_COLLECTION_FIELDS}}}
    }}
    search(input: $input) {{
        totalItems
    }}
}}
""",
)

SEARCH_PRODUCTS = GraphQLQuery(
    name="SearchProducts",
    document="""
query SearchProducts($input: SearchInput!) {
    search(input: $input) {
        totalItems
        items {
            productId
            productName
            slug
            description
            currencyCode
            productAsset {
                id
                preview
            }
            priceWithTax {
                ... on PriceRange {
                    min
                    max
                }
                ... on SinglePrice {
                    value
                }
            }
        }
        facetValues {
            count
            facetValue {
                id
                name
                facet {
                    id
                    name
                }
            }
        }
        collections {
            count
            collection {
                id
                name
                slug
            }
        }
    }
}
""",
)
