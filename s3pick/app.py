from __future__ import annotations

import argparse
import os
import sys
from dataclasses import dataclass
from typing import Mapping, Optional

import boto3
from botocore.exceptions import BotoCoreError, ProfileNotFound

from .navigator import EmptyBucketError, NoBucketsError, Select, navigate, select_bucket
from .picker import SelectionCancelled, fuzzy_select
from .s3 import S3Service

EXIT_OK = 0
EXIT_NOTHING_TO_BROWSE = 1
EXIT_CONFIG_ERROR = 2
EXIT_CANCELLED = 130

REGION_ENV_VARS = ("AWS_REGION", "AWS_DEFAULT_REGION")


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class Settings:
    region: str
    profile: Optional[str] = None
    debug: bool = False


def _first_env(environ: Mapping[str, str], names: tuple[str, ...]) -> Optional[str]:
    for name in names:
        value = (environ.get(name) or "").strip()
        if value:
            return value
    return None


def _session(profile: Optional[str]):
    try:
        if profile is None:
            return boto3.session.Session()
        return boto3.session.Session(profile_name=profile)
    except ProfileNotFound as exc:
        raise ConfigError(str(exc)) from exc


def resolve_settings(
    args: argparse.Namespace, environ: Optional[Mapping[str, str]] = None
) -> Settings:
    """Merge flags over environment over the AWS config files.

    Raises ConfigError when no region or no credentials can be found.
    """
    if environ is None:
        environ = os.environ
    profile = (args.profile or "").strip() or _first_env(environ, ("AWS_PROFILE",))
    region = (args.region or "").strip() or _first_env(environ, REGION_ENV_VARS)

    session = _session(profile)
    if not region:
        region = session.region_name
    if not region:
        raise ConfigError(
            "No AWS region configured. Pass --region or set AWS_REGION."
        )
    try:
        credentials = session.get_credentials()
    except BotoCoreError as exc:
        raise ConfigError(f"Could not load AWS credentials: {exc}") from exc
    if credentials is None:
        raise ConfigError(
            "No AWS credentials found. Pass --profile or configure credentials."
        )
    return Settings(region=region, profile=profile, debug=bool(args.debug))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="s3pick",
        description=(
            "Pick an S3 object with fuzzy search, one level at a time, "
            "and print its AWS console URL."
        ),
    )
    parser.add_argument(
        "-r",
        "--region",
        help=(
            "AWS region (defaults to $AWS_REGION, $AWS_DEFAULT_REGION, "
            "then the profile's region)"
        ),
    )
    parser.add_argument(
        "-p",
        "--profile",
        help="AWS profile to use (defaults to $AWS_PROFILE)",
    )
    parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Print resolved settings and S3 calls to stderr",
    )
    return parser


def browse(service: S3Service, region: str, select: Select) -> str:
    names, _error = service.list_bucket_names()
    bucket = select_bucket(names, select)
    service.debug(f"bucket={bucket!r}")
    return navigate(service, bucket, region, select)


def main(argv: Optional[list[str]] = None, select: Optional[Select] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = resolve_settings(args)
    except ConfigError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    service = S3Service(
        profile=settings.profile, region=settings.region, debug=settings.debug
    )
    service.debug(
        f"region={settings.region!r} profile={settings.profile or 'default'!r}"
    )
    try:
        uri = browse(service, settings.region, select or fuzzy_select)
    except (NoBucketsError, EmptyBucketError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_NOTHING_TO_BROWSE
    except (SelectionCancelled, KeyboardInterrupt):
        print("Cancelled.", file=sys.stderr)
        return EXIT_CANCELLED

    print(f"URI: {uri}")
    return EXIT_OK


def run() -> None:
    raise SystemExit(main())


if __name__ == "__main__":
    run()
