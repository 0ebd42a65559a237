from pydantic import BaseModel, ConfigDict

class RedditEntry(BaseModel):
    """The `data` object of one child in a Reddit listing."""

    model_config = ConfigDict(extra="ignore")

    name: str
    domain: str = ""
    title: str = ""
    selftext: str = ""
    url: str = ""
    created_utc: float = 0
    ups: int = 0
    author: str = ""
