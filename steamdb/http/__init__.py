"""HTTP module for the steamdb fetch layer.

Provides the fetch client, its response value, the cookie jar, the
pluggable cache store and the direct curl_cffi transport.
"""

from .response import (
    HttpResponse,
    ResponseHeaders,
)

from .cache import (
    CacheEntry,
    CacheStore,
    InMemoryCache,
)

from .cookies import (
    Cookie,
    CookieJar,
    cookie_from_mapping,
    parse_cookie_header,
)

from .transport import (
    CurlTransport,
    Transport,
)

from .client import (
    ClientConfig,
    CookieProxy,
    HttpClient,
    cache_key_for,
    normalize_headers,
    normalize_url,
)

__all__ = [
    # Responses
    "HttpResponse",
    "ResponseHeaders",

    # Cache
    "CacheEntry",
    "CacheStore",
    "InMemoryCache",

    # Cookies
    "Cookie",
    "CookieJar",
    "cookie_from_mapping",
    "parse_cookie_header",

    # Transport
    "CurlTransport",
    "Transport",

    # Client
    "ClientConfig",
    "CookieProxy",
    "HttpClient",
    "cache_key_for",
    "normalize_headers",
    "normalize_url",
]
