"""
Public URL derivation for stored objects.

A retrieval URL is `<cdn base>/<percent-encoded object path>`. Path
separators are kept so object keys show up as URL structure; an `&` in a
key always becomes `%26`.
"""

from typing import Optional
from urllib.parse import quote

from .models import ContainerHandle

# Sub-delimiters allowed in a path segment, minus "&".
_SAFE_PATH_CHARS = "/!$'()*+,;=:@"


def encode_object_path(path: str) -> str:
    """Percent-encode an object path for use in a URL."""
    return quote(path, safe=_SAFE_PATH_CHARS).replace("&", "%26")


class UrlBuilder:
    """
    Build CDN base URLs for a container.

    An explicit CNAME from the credentials wins over the container's own
    CDN endpoints, for both plain and SSL URLs.
    """

    def __init__(self, cname: Optional[str] = None) -> None:
        self._cname = cname.rstrip("/") if cname else None

    def build_base_url(self, container: ContainerHandle, use_ssl: bool) -> str:
        if self._cname:
            return self._cname
        base = container.cdn_ssl_url if use_ssl else container.cdn_url
        return base.rstrip("/")

    @staticmethod
    def object_url(base_url: str, path: str) -> str:
        return f"{base_url}/{encode_object_path(path)}"
