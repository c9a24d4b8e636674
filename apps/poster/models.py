from pydantic import BaseModel, Field
from typing import Literal, Optional

from apps.poster.config import settings

Template = Literal["bold", "clean"]


class ArticleMetadata(BaseModel):
    # always strings, never None; the renderer fills placeholders for ""
    title: str = ""
    excerpt: str = ""
    image: str = ""


class PosterSize(BaseModel):
    w: int = Field(gt=0, le=settings.max_dimension)
    h: int = Field(gt=0, le=settings.max_dimension)


class RenderRequest(BaseModel):
    url: Optional[str] = None  # checked by the handler so it can answer 400
    template: Template = "bold"
    size: Optional[PosterSize] = None

    def viewport(self) -> PosterSize:
        if self.size is not None:
            return self.size
        return PosterSize(w=settings.default_width, h=settings.default_height)
