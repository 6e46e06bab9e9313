from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Identity:
    """
    Authenticated principal as supplied by the auth layer.

    `tenant_id` is the token's tenant claim, if any; the effective tenant of a
    request may come from a header or query parameter instead.
    """

    user_id: int | None
    tenant_id: int | None = None
