"""Tests for the depfetch command line entrypoint."""

import os
from unittest.mock import patch

import pytest

from depfetch.args import parse_args
from depfetch.constants import ExitCodes
from depfetch.download_artifacts import main


def _argv(fixture_repo, target, packages, *extra):
    return [
        "-P", f"TARGET_DIR={target}",
        "-P", f"PACKAGES_TO_COPY={packages}",
        "-P", f"MAVEN_REPOS={fixture_repo.root}",
        "-P", "USE_MAVEN_LOCAL_REPO=false",
        "-P", "USE_REMOTE_MAVEN_REPOS=false",
        *extra,
    ]


@pytest.fixture(autouse=True)
def _clean_environ(monkeypatch):
    for name in list(os.environ):
        if name.startswith("DEPFETCH_"):
            monkeypatch.delenv(name)


class TestArgs:
    """Argument parsing."""

    def test_properties_accumulate(self):
        args = parse_args(["-PTARGET_DIR=out", "--property", "USE_JETIFIER=1", "--loglevel", "debug"])
        assert args.PROPERTIES == ["TARGET_DIR=out", "USE_JETIFIER=1"]
        assert args.LOG_LEVEL == "DEBUG"
        assert args.QUIET is False
        assert args.CONFIG is None


class TestMain:
    """End-to-end runs against the fixture repository."""

    def test_success_prints_report(self, fixture_repo, tmp_path, capsys):
        target = tmp_path / "out"
        code = main(_argv(fixture_repo, target, "com.android.support:support-annotations:9.9.9;no.such:lib"))
        assert code == ExitCodes.SUCCESS.value
        assert capsys.readouterr().out == (
            "Copied artifacts:\n"
            "com.android.support.support-annotations-26.1.0.jar\n\n"
            "Missing artifacts:\n"
            "no.such:lib:+\n\n"
            "Modified artifacts:\n"
            "com.android.support:support-annotations:9.9.9 --> com.android.support:support-annotations:+\n"
        )
        assert os.listdir(target) == ["com.android.support.support-annotations-26.1.0.jar"]

    def test_jetifier_run(self, fixture_repo, tmp_path, capsys):
        target = tmp_path / "out"
        code = main(_argv(fixture_repo, target, "com.android.support:support-v4:24.0.0", "-P", "USE_JETIFIER=true"))
        assert code == ExitCodes.SUCCESS.value
        assert sorted(os.listdir(target)) == [
            "androidx.annotation.annotation-1.0.0.jar",
            "androidx.legacy.legacy-support-v4-1.0.0.aar",
        ]
        assert "--> androidx.legacy:legacy-support-v4:1.0.0" in capsys.readouterr().out

    def test_quiet(self, fixture_repo, tmp_path, capsys):
        code = main(_argv(fixture_repo, tmp_path / "out", "com.android.support:support-annotations:24.0.0", "-q"))
        assert code == ExitCodes.SUCCESS.value
        assert capsys.readouterr().out == ""

    def test_malformed_spec_still_copies_the_rest(self, fixture_repo, tmp_path, capsys):
        target = tmp_path / "out"
        code = main(_argv(fixture_repo, target, "bad spec;com.android.support:support-annotations:24.0.0"))
        assert code == ExitCodes.SPEC_ERROR.value
        assert "com.android.support.support-annotations-24.0.0.jar" in capsys.readouterr().out

    def test_missing_target_dir(self):
        assert main(["-P", "PACKAGES_TO_COPY=a:b"]) == ExitCodes.CONFIG_ERROR.value

    def test_unwritable_target(self, fixture_repo, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("x")
        code = main(_argv(fixture_repo, blocker, "com.android.support:support-annotations:24.0.0"))
        assert code == ExitCodes.FILE_ERROR.value

    @patch("depfetch.download_artifacts.download_artifacts")
    def test_config_file(self, mock_download, tmp_path):
        mock_download.return_value = (mock_download.report, [])
        mock_download.report.render.return_value = ""
        path = tmp_path / "depfetch.yml"
        path.write_text("depfetch:\n  TARGET_DIR: out\n  USE_JETIFIER: yes\n")
        assert main(["-c", str(path)]) == ExitCodes.SUCCESS.value
        config = mock_download.call_args.args[0]
        assert config.target_dir == "out"
        assert config.use_jetifier is True
