from .pydantic_compat import BaseModel, Field


class FeedSettings(BaseModel):
    """
    Tunables of the discussion feed.

    The defaults match the forum's production layout: five posts per page,
    share links pointing at the public site.
    """

    page_size: int = Field(default=5, gt=0)
    share_base_url: str = "https://bookclub-khaki.vercel.app"
    share_text: str = 'Check out this discussion about "{book_title}" on BookForum'
