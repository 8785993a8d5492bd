# Domain exceptions raised by the fetch and thumbnail layers.
# The controller layer converts these to HTTPException or to a redirect.


class ClientInputError(Exception):
    pass


class UpstreamError(Exception):
    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Upstream fetch of {url} failed: {reason}")


class TooManyRedirectsError(Exception):
    def __init__(self, url: str, hops: int) -> None:
        self.url = url
        self.hops = hops
        super().__init__(f"Too many redirects ({hops}) starting from {url}")


class UnsupportedMediaError(Exception):
    def __init__(self, content_type: str | None) -> None:
        self.content_type = content_type
        super().__init__(f"Cannot thumbnail content type {content_type!r}")


class TransformError(Exception):
    pass
