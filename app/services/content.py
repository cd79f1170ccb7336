# app/services/content.py
from fastapi import Request


class StaticContentProvider:
    """
    Serves the protected content configured at startup.

    Any object with a ``get_content() -> str`` method can stand in for this
    one, e.g. a database or file-backed provider.
    """

    def __init__(self, content: str):
        self._content = content

    def get_content(self) -> str:
        """
        Return the protected content.

        Returns:
            The configured content string; may be empty, which callers treat as not found.
        """
        return self._content


def get_content_provider(request: Request):
    """FastAPI dependency returning the provider attached to the running app."""
    return request.app.state.content_provider
