"""Pydantic base schema for remote agent API payloads.

The remote API speaks snake_case JSON and adds fields over time, so the base
tolerates unknown keys instead of rejecting them.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """Shared base for all wire models of the remote agent API.

    - Ignores extra fields sent by the server
    - Enables populate_by_name so aliased fields accept either spelling
    """

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
    )
