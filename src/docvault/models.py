"""Request and response models for the storage endpoints.

Field names are snake_case in Python and camelCase on the wire, matching
the JSON shapes the front end already consumes.

"""

import pydantic
from pydantic import alias_generators

__all__ = [
    'ErrorResponse',
    'PresignRequest',
    'PresignResult',
    'ProxyRequest',
    'UploadResult',
]


class _CamelModel(pydantic.BaseModel):
    model_config = pydantic.ConfigDict(
        alias_generator=alias_generators.to_camel,
        populate_by_name=True,
        extra='ignore',
    )


class UploadResult(_CamelModel):
    """Outcome of a successful upload.

    ``public_url`` is the literal URL the object was written to. Whether
    it can be fetched without a signature depends on the bucket's access
    policy, which this service does not manage.

    """

    success: bool = True
    path: str
    public_url: str
    size: int


class PresignRequest(_CamelModel):
    file_path: str | None = None
    expires_in: int | None = None


class PresignResult(_CamelModel):
    success: bool = True
    signed_url: str


class ProxyRequest(_CamelModel):
    url: str | None = None
    filename: str | None = None


class ErrorResponse(_CamelModel):
    """JSON body of every failed request."""

    error: str
    kind: str | None = None
    missing: list[str] | None = None
    status: int | None = None
    detail: str | None = None
