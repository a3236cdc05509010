"""Caller identity handed over by the authentication collaborator."""

from __future__ import annotations

from pydantic import Field

from opsgate_authz.common.schema import BaseSchema


class CallerIdentity(BaseSchema):
    """Verified caller claims; either field may be absent."""

    external_ref: str | None = Field(default=None, alias="externalRef")
    email: str | None = None


__all__ = ["CallerIdentity"]
