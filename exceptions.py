"""
Exception hierarchy for the IKEA Lookup Proxy.

Only fatal conditions are modelled as exceptions. A closed store is a field on
the normalized record, never an error.
"""

from typing import Any, Dict, Optional

from logging_config import excerpt


class ProxyError(Exception):
    """Base class for every error raised by the proxy"""

    def __init__(self, message: str, error_code: str = "PROXY_ERROR", details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


class UpstreamError(ProxyError):
    """One upstream fetch failed with an unexpected status or body"""

    def __init__(self, url: str, status: int, body: str = "", resource: str = "upstream"):
        self.url = url
        self.status = status
        self.body_excerpt = excerpt(body)
        self.resource = resource
        super().__init__(
            f"HTTP {status} from {url}: {self.body_excerpt}",
            "UPSTREAM_ERROR",
            {"url": url, "status": status, "resource": resource},
        )


class ArticleLookupError(ProxyError):
    """A lookup could not produce a record because a required resource failed"""

    def __init__(self, url: str, status: int, body_excerpt: str = "", resource: str = "upstream"):
        self.url = url
        self.status = status
        self.body_excerpt = body_excerpt
        self.resource = resource
        super().__init__(
            f"Lookup failed on {resource}: HTTP {status} from {url}: {body_excerpt}",
            "LOOKUP_FAILED",
            {"url": url, "status": status, "resource": resource},
        )

    @classmethod
    def from_upstream(cls, error: UpstreamError) -> "ArticleLookupError":
        return cls(error.url, error.status, error.body_excerpt, error.resource)


class OptionalResourceError(ProxyError):
    """An optional resource is unavailable; the record is degraded, not failed"""

    def __init__(self, resource: str, reason: str):
        self.resource = resource
        super().__init__(f"{resource} unavailable: {reason}", "OPTIONAL_RESOURCE_UNAVAILABLE", {"resource": resource})


class ConfigurationError(ProxyError):
    """A setting required by the requested operation is missing"""

    def __init__(self, setting: str):
        super().__init__(f"Missing required setting: {setting}", "CONFIGURATION_ERROR", {"setting": setting})
