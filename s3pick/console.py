from __future__ import annotations

from .s3 import DELIMITER

CONSOLE_BASE = "https://s3.console.aws.amazon.com/s3"


def make_console_uri(bucket: str, prefix: str, region: str, is_directory: bool) -> str:
    """Return the AWS console URL for ``prefix``, or "" while it is not terminal.

    Keys are templated as-is; no escaping is applied.
    """
    if not prefix or prefix.endswith(DELIMITER):
        return ""
    if is_directory:
        folder = f"{prefix}{DELIMITER}"
        return f"{CONSOLE_BASE}/buckets/{bucket}?prefix={folder}&region={region}"
    return f"{CONSOLE_BASE}/object/{bucket}?prefix={prefix}&region={region}"
