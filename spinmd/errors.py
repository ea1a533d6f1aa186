"""Error types raised by the delivery config processor and API client."""

import json


class SpinmdError(Exception):
    """Base class for spinmd errors."""


class InvalidContentError(SpinmdError):
    """Content could not be parsed as the expected document format.

    Keeps the raw bytes and the underlying parser error for diagnostics.
    ``source`` names where the content came from (a file path or URL).
    """

    def __init__(self, content, parse_error, source=None):
        self.content = content
        self.parse_error = parse_error
        self.source = source
        if source:
            super().__init__(f"Failed to parse contents of {source}: {parse_error}")
        else:
            super().__init__(str(parse_error))


class UnexpectedResponseError(SpinmdError):
    """Non-2xx response from the Spinnaker API."""

    def __init__(self, status_code, url, content=b""):
        self.status_code = status_code
        self.url = url
        self.content = content
        super().__init__(f"Unexpected response from {url}, expected 2xx but got {status_code}")

    def parse(self):
        """Decode the response body as JSON.

        Raises:
            InvalidContentError: if the body is not valid JSON.
        """
        try:
            return json.loads(self.content)
        except ValueError as e:
            raise InvalidContentError(self.content, e, source=self.url) from e


class PublishRejectedError(UnexpectedResponseError):
    """The API refused a delivery config on publish.

    ``publish_error`` holds the typed error document returned by the API.
    """

    def __init__(self, status_code, url, content, publish_error):
        super().__init__(status_code, url, content)
        self.publish_error = publish_error


class DiscoveryError(SpinmdError):
    """Loading the live resources of an application failed."""

    def __init__(self, app_name, cause):
        self.app_name = app_name
        super().__init__(f"failed to load resources for {app_name}: {cause}")


class UnsupportedResourceKindError(SpinmdError):
    """No artifact reference layout is known for this resource kind."""

    def __init__(self, kind):
        self.kind = kind
        super().__init__(f"cannot update artifact reference for unexpected kind: {kind!r}")


class MalformedResourceError(SpinmdError):
    """A resource is missing the nested structure its kind requires."""

    def __init__(self, kind, path):
        self.kind = kind
        self.path = path
        super().__init__(f"resource for {kind} missing {path} property")
