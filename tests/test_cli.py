import argparse
import unittest
from contextlib import redirect_stderr, redirect_stdout
from io import StringIO
from unittest.mock import MagicMock, patch

from botocore.exceptions import ProfileNotFound

from s3pick.app import (
    EXIT_CANCELLED,
    EXIT_CONFIG_ERROR,
    EXIT_NOTHING_TO_BROWSE,
    EXIT_OK,
    ConfigError,
    Settings,
    build_parser,
    main,
    resolve_settings,
)
from s3pick.picker import SelectionCancelled


def _args(*argv: str) -> argparse.Namespace:
    return build_parser().parse_args(list(argv))


def _session(region=None, credentials=object()) -> MagicMock:
    session = MagicMock()
    session.region_name = region
    session.get_credentials.return_value = credentials
    return session


class TestResolveSettings(unittest.TestCase):
    def test_flags_take_precedence_over_environment(self) -> None:
        environ = {"AWS_REGION": "eu-west-1", "AWS_PROFILE": "env-profile"}
        with patch("s3pick.app.boto3.session.Session", return_value=_session()) as cls:
            settings = resolve_settings(
                _args("--region", "us-west-2", "--profile", "dev", "--debug"), environ
            )

        cls.assert_called_once_with(profile_name="dev")
        self.assertEqual(settings, Settings(region="us-west-2", profile="dev", debug=True))

    def test_environment_used_when_flags_missing(self) -> None:
        environ = {"AWS_DEFAULT_REGION": "ap-northeast-1", "AWS_PROFILE": "ops"}
        with patch("s3pick.app.boto3.session.Session", return_value=_session()):
            settings = resolve_settings(_args(), environ)

        self.assertEqual(settings, Settings(region="ap-northeast-1", profile="ops"))

    def test_aws_region_beats_aws_default_region(self) -> None:
        environ = {"AWS_REGION": "eu-central-1", "AWS_DEFAULT_REGION": "us-east-1"}
        with patch("s3pick.app.boto3.session.Session", return_value=_session()):
            settings = resolve_settings(_args(), environ)

        self.assertEqual(settings.region, "eu-central-1")
        self.assertIsNone(settings.profile)

    def test_falls_back_to_profile_region(self) -> None:
        with patch(
            "s3pick.app.boto3.session.Session",
            return_value=_session(region="sa-east-1"),
        ):
            settings = resolve_settings(_args(), {})

        self.assertEqual(settings.region, "sa-east-1")

    def test_missing_region_is_config_error(self) -> None:
        with patch("s3pick.app.boto3.session.Session", return_value=_session()):
            with self.assertRaises(ConfigError):
                resolve_settings(_args(), {})

    def test_missing_credentials_is_config_error(self) -> None:
        with patch(
            "s3pick.app.boto3.session.Session",
            return_value=_session(credentials=None),
        ):
            with self.assertRaises(ConfigError):
                resolve_settings(_args("-r", "us-east-1"), {})

    def test_unknown_profile_is_config_error(self) -> None:
        with patch(
            "s3pick.app.boto3.session.Session",
            side_effect=ProfileNotFound(profile="nope"),
        ):
            with self.assertRaises(ConfigError):
                resolve_settings(_args("-p", "nope", "-r", "us-east-1"), {})


class TestMain(unittest.TestCase):
    def _run(self, argv, select=None, service=None):
        stdout = StringIO()
        stderr = StringIO()
        settings = Settings(region="ap-northeast-1")
        with patch("s3pick.app.resolve_settings", return_value=settings):
            with patch("s3pick.app.S3Service", return_value=service) as service_cls:
                with redirect_stdout(stdout), redirect_stderr(stderr):
                    code = main(argv, select=select)
        return code, stdout.getvalue(), stderr.getvalue(), service_cls

    def test_prints_uri_line(self) -> None:
        service = MagicMock()
        service.list_bucket_names.return_value = (["logs"], None)
        with patch(
            "s3pick.app.navigate",
            return_value="https://s3.console.aws.amazon.com/s3/object/logs"
            "?prefix=2024/jan.log&region=ap-northeast-1",
        ) as navigate:
            code, out, _err, service_cls = self._run(
                [], select=lambda items, default, title: 0, service=service
            )

        self.assertEqual(code, EXIT_OK)
        self.assertEqual(
            out,
            "URI: https://s3.console.aws.amazon.com/s3/object/logs"
            "?prefix=2024/jan.log&region=ap-northeast-1\n",
        )
        service_cls.assert_called_once_with(
            profile=None, region="ap-northeast-1", debug=False
        )
        self.assertEqual(navigate.call_args.args[:3], (service, "logs", "ap-northeast-1"))

    def test_no_buckets_exits_non_zero(self) -> None:
        service = MagicMock()
        service.list_bucket_names.return_value = ([], "Error listing buckets")
        code, out, err, _cls = self._run([], select=MagicMock(), service=service)

        self.assertEqual(code, EXIT_NOTHING_TO_BROWSE)
        self.assertEqual(out, "")
        self.assertIn("No buckets", err)

    def test_cancel_exits_non_zero(self) -> None:
        service = MagicMock()
        service.list_bucket_names.return_value = (["logs"], None)
        select = MagicMock(side_effect=SelectionCancelled())
        code, out, _err, _cls = self._run([], select=select, service=service)

        self.assertEqual(code, EXIT_CANCELLED)
        self.assertEqual(out, "")

    def test_config_error_exits_before_browsing(self) -> None:
        stderr = StringIO()
        with patch("s3pick.app.resolve_settings", side_effect=ConfigError("no region")):
            with patch("s3pick.app.S3Service") as service_cls:
                with redirect_stderr(stderr):
                    code = main([])

        self.assertEqual(code, EXIT_CONFIG_ERROR)
        service_cls.assert_not_called()
        self.assertIn("no region", stderr.getvalue())


if __name__ == "__main__":
    unittest.main()
