"""Public image hosting for reference photos."""

from snapsell.core.api.hosting.imgur import ImageHostError, ImgurClient, to_https

__all__ = ["ImageHostError", "ImgurClient", "to_https"]
