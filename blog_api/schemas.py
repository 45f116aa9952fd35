from pydantic import BaseModel, ConfigDict, Field


# --- Article ---

class ArticleAttributes(BaseModel):
    # Undeclared attributes are dropped rather than rejected.
    model_config = ConfigDict(extra="ignore")

    title: str | None = Field(None, max_length=300)
    content: str | None = None
    slug: str | None = Field(None, max_length=350)


class ArticleData(BaseModel):
    type: str | None = None
    attributes: ArticleAttributes = Field(default_factory=ArticleAttributes)


class ArticleDocument(BaseModel):
    data: ArticleData = Field(default_factory=ArticleData)


# --- Comment ---

class CommentAttributes(BaseModel):
    model_config = ConfigDict(extra="ignore")

    content: str | None = None


class CommentData(BaseModel):
    type: str | None = None
    attributes: CommentAttributes = Field(default_factory=CommentAttributes)


class CommentDocument(BaseModel):
    data: CommentData = Field(default_factory=CommentData)


# --- Access token ---

class LoginRequest(BaseModel):
    code: str | None = None
