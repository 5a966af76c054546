from typing import Callable, Optional, Union
from urllib.parse import quote

from .config import FeedSettings
from .enums import SharePlatform
from .models import Post


def _encode(value: str) -> str:
    # Same reserved set as JavaScript's encodeURIComponent.
    return quote(value, safe="-_.!~*'()")


def post_url(post_id: str, settings: FeedSettings) -> str:
    return f"{settings.share_base_url.rstrip('/')}/post/{post_id}"


def share_link(
    post: Post,
    platform: Union[SharePlatform, str],
    settings: Optional[FeedSettings] = None,
    clipboard: Optional[Callable[[str], None]] = None,
) -> str:
    """
    Return the link sharing ``post`` on ``platform``.

    For :attr:`SharePlatform.COPY` the plain post URL is also handed to
    ``clipboard`` when one is given.
    """
    settings = settings or FeedSettings()
    try:
        platform = SharePlatform(platform)
    except ValueError:
        raise ValueError(f"Unsupported share platform: {platform!r}") from None

    url = post_url(post.id, settings)
    if platform == SharePlatform.TWITTER:
        text = settings.share_text.format(book_title=post.book_title)
        return f"https://twitter.com/intent/tweet?text={_encode(text)}&url={_encode(url)}"
    if platform == SharePlatform.FACEBOOK:
        return f"https://www.facebook.com/sharer/sharer.php?u={_encode(url)}"

    if clipboard is not None:
        clipboard(url)
    return url
