from storefront.client.api import ClientError, StorefrontClient
from storefront.client.cart import LocalCart, LocalCartLine
from storefront.client.routing import Role, resolve_view, role_of
