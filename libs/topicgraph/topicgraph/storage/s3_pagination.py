"""S3 list pagination."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any


def iter_list_objects_v2(client: Any, *, bucket: str, **kwargs: Any) -> Iterator[dict[str, Any]]:
    """Yield `list_objects_v2` pages until the listing is no longer truncated."""
    token: str | None = None
    while True:
        call_kwargs: dict[str, Any] = {"Bucket": bucket, **kwargs}
        if token:
            call_kwargs["ContinuationToken"] = token
        page: dict[str, Any] = dict(client.list_objects_v2(**call_kwargs))
        yield page
        token = str(page.get("NextContinuationToken") or "") if page.get("IsTruncated") else None
        if not token:
            return
