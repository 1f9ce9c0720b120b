from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

DELIMITER = "/"
PAGE_SIZE = 1000


@dataclass(frozen=True)
class Listing:
    groups: tuple[str, ...] = ()
    leaves: tuple[str, ...] = ()
    error: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.groups and not self.leaves


class S3Service:
    """Single-page, single-level access to one account's buckets."""

    def __init__(
        self,
        profile: Optional[str] = None,
        region: Optional[str] = None,
        debug: bool = False,
    ) -> None:
        self._profile = profile
        self._region = region
        self._debug = debug
        self._s3 = None

    def _client(self):
        if self._s3 is not None:
            return self._s3
        if self._profile is None:
            session = boto3.session.Session()
        else:
            session = boto3.session.Session(profile_name=self._profile)
        if self._region:
            client = session.client("s3", region_name=self._region)
        else:
            client = session.client("s3")
        self._s3 = client
        return client

    def _is_sso_expired_error(self, exc: Exception) -> bool:
        text = f"{type(exc).__name__}: {exc}".lower()
        markers = [
            "unauthorizedssotokenerror",
            "sso session",
            "sso token",
            "token has expired",
            "expiredtoken",
            "error loading sso token",
        ]
        return any(marker in text for marker in markers)

    def _report(self, action: str, exc: Exception) -> str:
        if isinstance(exc, ClientError):
            code = exc.response.get("Error", {}).get("Code", "Unknown")
            message = f"Error {action}: {code}: {exc}"
        else:
            message = f"Error {action}: {exc}"
        print(message, file=sys.stderr)
        if self._is_sso_expired_error(exc):
            login = "aws sso login"
            if self._profile:
                login = f"{login} --profile {self._profile}"
            print(f"SSO session looks expired; run `{login}`.", file=sys.stderr)
        return message

    def debug(self, message: str) -> None:
        if self._debug:
            print(f"debug: {message}", file=sys.stderr)

    def list_bucket_names(self) -> tuple[list[str], Optional[str]]:
        self.debug("list_buckets")
        try:
            response = self._client().list_buckets()
        except (BotoCoreError, ClientError) as exc:
            return [], self._report("listing buckets", exc)
        names: list[str] = []
        for bucket in response.get("Buckets", []):
            name = bucket.get("Name")
            if name:
                names.append(name)
        self.debug(f"list_buckets returned {len(names)} bucket(s)")
        return names, None

    def list_level(self, bucket: str, prefix: str) -> Listing:
        """List one level below ``prefix``.

        Only the first page is fetched. Keys ending with the delimiter are
        folder markers and are left out of ``leaves``.
        """
        self.debug(f"list_objects_v2 bucket={bucket!r} prefix={prefix!r}")
        try:
            response = self._client().list_objects_v2(
                Bucket=bucket,
                Prefix=prefix,
                Delimiter=DELIMITER,
                MaxKeys=PAGE_SIZE,
            )
        except (BotoCoreError, ClientError) as exc:
            return Listing(error=self._report(f"listing s3://{bucket}/{prefix}", exc))

        groups: list[str] = []
        for entry in response.get("CommonPrefixes", []):
            value = entry.get("Prefix")
            if value:
                groups.append(value)
        leaves: list[str] = []
        for entry in response.get("Contents", []):
            key = entry.get("Key")
            if not key:
                continue
            if key.endswith(DELIMITER):
                continue
            leaves.append(key)

        if response.get("IsTruncated"):
            print(
                f"Note: s3://{bucket}/{prefix} has more than {PAGE_SIZE} entries; "
                "only the first page is shown.",
                file=sys.stderr,
            )
        self.debug(f"found {len(groups)} prefix(es) and {len(leaves)} object(s)")
        return Listing(groups=tuple(groups), leaves=tuple(leaves))
