from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from .console import make_console_uri
from .s3 import DELIMITER, S3Service

# (items, default index, title) -> chosen index
Select = Callable[[Sequence[str], int, Optional[str]], int]


class NoBucketsError(Exception):
    pass


class EmptyBucketError(Exception):
    pass


@dataclass(frozen=True)
class TraversalState:
    prefix: str = ""
    is_directory: bool = False


def select_bucket(names: Sequence[str], select: Select) -> str:
    if not names:
        raise NoBucketsError("No buckets available to browse.")
    index = select(names, 0, "Bucket")
    return names[index]


def resolve_candidates(service: S3Service, bucket: str, prefix: str) -> list[str]:
    listing = service.list_level(bucket, prefix)
    return [*listing.groups, *listing.leaves]


def advance(
    service: S3Service, bucket: str, state: TraversalState, select: Select
) -> TraversalState:
    prefix = state.prefix
    candidates = resolve_candidates(service, bucket, prefix)
    if candidates:
        title = f"s3://{bucket}/{prefix}"
        picked = candidates[select(candidates, 0, title)]
        return TraversalState(prefix=picked, is_directory=picked.endswith(DELIMITER))
    if prefix.endswith(DELIMITER):
        # Nothing below this folder: the folder itself is the target.
        return TraversalState(prefix=prefix[: -len(DELIMITER)], is_directory=True)
    return TraversalState(prefix=prefix, is_directory=False)


def navigate(
    service: S3Service,
    bucket: str,
    region: str,
    select: Select,
    start: Optional[TraversalState] = None,
) -> str:
    """Drive the picker level by level until a console URL can be built."""
    state = start or TraversalState()
    while True:
        state = advance(service, bucket, state, select)
        if not state.prefix:
            raise EmptyBucketError(f"s3://{bucket}/ has nothing to browse.")
        uri = make_console_uri(bucket, state.prefix, region, state.is_directory)
        if uri:
            return uri
