"""
JSON:API serialisation.

Each ``ResourceSerializer`` declares the resource ``type``, the attribute
subset exposed for the entity and its relationships.  Relationships are
rendered as resource identifier linkage only; related bodies are added to
the top-level ``included`` array when the caller asks for them by name.

To-one linkage is read from the foreign key column, so it never requires a
relationship load.  To-many linkage reads the collection and is therefore
only rendered for primary data, whose collections the services eager-load.
"""
from dataclasses import dataclass
from typing import Any, Iterable, Sequence

from fastapi.responses import JSONResponse

from blog_api.models import AccessToken, Article, Comment, User

JSONAPI_MEDIA_TYPE = "application/vnd.api+json"


class JSONAPIResponse(JSONResponse):
    media_type = JSONAPI_MEDIA_TYPE


@dataclass(frozen=True)
class Relationship:
    name: str
    type: str
    many: bool = False
    # Foreign key attribute holding the related id (to-one only).
    key: str | None = None


def identifier(type_: str, id_: Any) -> dict:
    return {"type": type_, "id": str(id_)}


class ResourceSerializer:
    type: str = ""
    attributes: tuple[str, ...] = ()
    relationships: tuple[Relationship, ...] = ()

    @property
    def relationship_names(self) -> frozenset[str]:
        return frozenset(rel.name for rel in self.relationships)

    def resource(self, obj, with_to_many: bool = True) -> dict:
        data = {
            "id": str(obj.id),
            "type": self.type,
            "attributes": {name: getattr(obj, name) for name in self.attributes},
        }
        relationships = {
            rel.name: {"data": self._linkage(obj, rel)}
            for rel in self.relationships
            if with_to_many or not rel.many
        }
        if relationships:
            data["relationships"] = relationships
        return data

    def related(self, obj, name: str) -> list:
        """Return the loaded related objects for relationship *name*."""
        value = getattr(obj, name, None)
        if value is None:
            return []
        if isinstance(value, (list, tuple)):
            return list(value)
        return [value]

    def _linkage(self, obj, rel: Relationship):
        if rel.many:
            return [identifier(rel.type, item.id) for item in getattr(obj, rel.name)]
        if rel.key is not None:
            related_id = getattr(obj, rel.key)
        else:
            related_id = getattr(getattr(obj, rel.name, None), "id", None)
        return identifier(rel.type, related_id) if related_id is not None else None


class UserSerializer(ResourceSerializer):
    type = "users"
    attributes = ("login", "name", "url", "avatar_url")


class ArticleSerializer(ResourceSerializer):
    type = "articles"
    attributes = ("title", "content", "slug")
    relationships = (
        Relationship("comments", "comments", many=True),
        Relationship("user", "users", key="user_id"),
    )


class CommentSerializer(ResourceSerializer):
    type = "comments"
    attributes = ("content",)
    relationships = (
        Relationship("article", "articles", key="article_id"),
        Relationship("user", "users", key="user_id"),
    )


class AccessTokenSerializer(ResourceSerializer):
    type = "access_tokens"
    attributes = ("token",)
    relationships = (Relationship("user", "users", key="user_id"),)


SERIALIZERS: dict[type, ResourceSerializer] = {
    User: UserSerializer(),
    Article: ArticleSerializer(),
    Comment: CommentSerializer(),
    AccessToken: AccessTokenSerializer(),
}


def serializer_for(obj) -> ResourceSerializer:
    return SERIALIZERS[type(obj)]


def parse_include(raw: str | None) -> tuple[str, ...]:
    """Split an ``include`` query value into relationship names, preserving order."""
    if not raw:
        return ()
    names: list[str] = []
    for part in raw.split(","):
        name = part.strip()
        if name and name not in names:
            names.append(name)
    return tuple(names)


def _included(primary: Sequence, include: Iterable[str]) -> list[dict]:
    seen = {(serializer_for(obj).type, str(obj.id)) for obj in primary}
    included: list[dict] = []
    for obj in primary:
        serializer = serializer_for(obj)
        for name in include:
            for related in serializer.related(obj, name):
                related_serializer = serializer_for(related)
                key = (related_serializer.type, str(related.id))
                if key in seen:
                    continue
                seen.add(key)
                included.append(related_serializer.resource(related, with_to_many=False))
    return included


def document(
    data,
    include: Iterable[str] = (),
    links: dict | None = None,
    meta: dict | None = None,
) -> dict:
    """
    Build a JSON:API document for one entity or a sequence of entities.

    ``data`` is an object for a single entity, an array for a sequence and
    ``null`` for ``None``.
    """
    include = tuple(include)
    if data is None:
        primary: list = []
        body = None
    elif isinstance(data, (list, tuple)):
        primary = list(data)
        body = [serializer_for(obj).resource(obj) for obj in primary]
    else:
        primary = [data]
        body = serializer_for(data).resource(data)

    doc: dict = {"data": body}
    if include:
        doc["included"] = _included(primary, include)
    if links:
        doc["links"] = links
    if meta:
        doc["meta"] = meta
    return doc
