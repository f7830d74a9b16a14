#!/usr/bin/env python3
"""
Tests for install.py: OS/Python/tool checks, package and AWS CLI installation,
credential setup and the filesystem steps.
"""

import os
import stat
import subprocess
import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))
import install
import tklib.config as cfg_mod
import utils
from install import Installer
from tklib.aws_client import CallerIdentity
from tklib.errors import CredentialsError, PrerequisiteError


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def toolkit_root(tmp_path, monkeypatch):
    monkeypatch.setenv("AWS_TOOLKIT_LOG_FILE", str(tmp_path / "logs" / "aws-toolkit.log"))
    monkeypatch.setattr(cfg_mod, "_config_path", lambda: tmp_path / "config" / "settings.json")
    cfg_mod.reset_config()
    yield tmp_path
    utils.shutdown_logging()
    cfg_mod.reset_config()


def _installer(root, answers=(), which=None, run=None, os_name="Linux", assume_yes=False):
    it = iter(answers)
    installer = Installer(
        MagicMock(),
        root,
        assume_yes=assume_yes,
        prompt=lambda _text: next(it),
        run=run or MagicMock(),
        which=which or (lambda tool: f"/usr/bin/{tool}"),
    )
    installer.os_name = os_name
    return installer


# ---------------------------------------------------------------------------
# Checks
# ---------------------------------------------------------------------------


class TestCheckOs:
    @pytest.mark.parametrize(
        "system, expected",
        [("Linux", "Linux"), ("Darwin", "macOS"), ("Windows", "Windows"), ("MINGW64_NT-10.0", "Windows"),
         ("CYGWIN_NT-10.0", "Windows"), ("MSYS_NT-10.0", "Windows")],
    )
    def test_supported(self, tmp_path, system, expected):
        assert _installer(tmp_path, os_name=None).check_os(system) == expected

    def test_unsupported(self, tmp_path):
        with pytest.raises(PrerequisiteError, match="Unsupported operating system: SunOS"):
            _installer(tmp_path).check_os("SunOS")


class TestCheckPython:
    def test_too_old(self, tmp_path):
        with pytest.raises(PrerequisiteError):
            _installer(tmp_path).check_python((3, 7, 9))

    def test_old_but_supported(self, tmp_path):
        installer = _installer(tmp_path)
        installer.check_python((3, 9, 18))
        installer.console.warning.assert_called_once_with("Python 3.9.18 detected. Version 3.10+ recommended.")

    def test_current(self, tmp_path):
        installer = _installer(tmp_path)
        installer.check_python((3, 12, 1))
        installer.console.success.assert_called_once_with("Python 3.12.1 is compatible")


class TestCheckTools:
    def test_all_present(self, tmp_path):
        installer = _installer(tmp_path)
        installer.check_tools()
        installer.console.success.assert_called_once_with("All required tools are available")

    def test_missing_on_linux(self, tmp_path):
        installer = _installer(tmp_path, which=lambda tool: None if tool == "unzip" else "/usr/bin/curl")
        with pytest.raises(PrerequisiteError, match="Missing required tools: unzip"):
            installer.check_tools()

    def test_windows_needs_nothing(self, tmp_path):
        installer = _installer(tmp_path, which=lambda tool: None, os_name="Windows")
        installer.check_tools()


# ---------------------------------------------------------------------------
# Python packages
# ---------------------------------------------------------------------------


class TestEnsurePackages:
    def test_nothing_missing(self, tmp_path, monkeypatch):
        monkeypatch.setattr(install, "find_missing_packages", lambda: [])
        installer = _installer(tmp_path)
        installer.ensure_packages()
        installer.run.assert_not_called()

    def test_declined(self, tmp_path, monkeypatch):
        monkeypatch.setattr(install, "find_missing_packages", lambda: ["pandas"])
        installer = _installer(tmp_path, answers=["n"])
        with pytest.raises(PrerequisiteError, match="pip install pandas"):
            installer.ensure_packages()
        installer.run.assert_not_called()

    def test_installs_with_pip(self, tmp_path, monkeypatch):
        results = iter([["pandas"], []])
        monkeypatch.setattr(install, "find_missing_packages", lambda: next(results))
        installer = _installer(tmp_path, answers=["y"])

        installer.ensure_packages()

        installer.run.assert_called_once_with(
            [sys.executable, "-m", "pip", "install", "pandas"], capture_output=True, text=True, check=True
        )
        installer.console.success.assert_called_once_with("pandas installed successfully")

    def test_pip_failure(self, tmp_path, monkeypatch):
        monkeypatch.setattr(install, "find_missing_packages", lambda: ["boto3"])
        run = MagicMock(side_effect=subprocess.CalledProcessError(1, "pip", stderr="no network"))
        installer = _installer(tmp_path, run=run, assume_yes=True)

        with pytest.raises(PrerequisiteError, match="Failed to install boto3: no network"):
            installer.ensure_packages()


# ---------------------------------------------------------------------------
# AWS CLI
# ---------------------------------------------------------------------------


class TestEnsureAwsCli:
    def test_already_installed(self, tmp_path):
        run = MagicMock(return_value=subprocess.CompletedProcess(
            ["aws", "--version"], 0, stdout="aws-cli/2.15.30 Python/3.11.8 Linux/6.1 exe/x86_64\n", stderr=""
        ))
        installer = _installer(tmp_path, run=run)

        installer.ensure_aws_cli()

        installer.console.success.assert_called_once_with("AWS CLI version 2.15.30 is installed")

    def test_missing_and_declined(self, tmp_path):
        installer = _installer(tmp_path, answers=["n"], which=lambda tool: None)
        with pytest.raises(PrerequisiteError, match="AWS CLI is required"):
            installer.ensure_aws_cli()
        installer.run.assert_not_called()

    def test_linux_install(self, tmp_path):
        installed = {"aws": False}

        def which(tool):
            if tool == "aws":
                return "/usr/local/bin/aws" if installed["aws"] else None
            return f"/usr/bin/{tool}"

        def run(cmd, **kwargs):
            if cmd[0] == "sudo":
                installed["aws"] = True
            return subprocess.CompletedProcess(cmd, 0)

        calls = MagicMock(side_effect=run)
        installer = _installer(tmp_path, answers=["y"], which=which, run=calls)

        installer.ensure_aws_cli()

        commands = [c.args[0][0] for c in calls.call_args_list]
        assert commands == ["curl", "unzip", "sudo"]
        assert calls.call_args_list[0].args[0][2] == install.AWS_CLI_LINUX_URL

    def test_macos_uses_homebrew(self, tmp_path):
        installer = _installer(tmp_path, os_name="macOS")
        installer.install_aws_cli()
        installer.run.assert_called_once_with(["brew", "install", "awscli"], check=True)

    def test_windows_prints_instructions(self, tmp_path):
        installer = _installer(tmp_path, os_name="Windows")
        installer.install_aws_cli()
        installer.run.assert_not_called()
        installer.console.info.assert_called_with("Or use: winget install Amazon.AWSCLI")

    def test_install_failure(self, tmp_path):
        run = MagicMock(side_effect=subprocess.CalledProcessError(22, "curl"))
        installer = _installer(tmp_path, run=run)
        with pytest.raises(PrerequisiteError, match="AWS CLI installation failed"):
            installer.install_aws_cli()


# ---------------------------------------------------------------------------
# Credentials
# ---------------------------------------------------------------------------


class TestCredentials:
    def _patch_client(self, monkeypatch, *outcomes):
        import tklib.aws_client as aws_mod

        client = MagicMock()
        client.get_caller_identity.side_effect = list(outcomes)
        monkeypatch.setattr(aws_mod, "build_client", lambda: client)
        return client

    def test_configured(self, tmp_path, monkeypatch):
        identity = CallerIdentity("123456789012", "arn:aws:iam::123456789012:user/dev", "AIDA")
        self._patch_client(monkeypatch, identity)
        installer = _installer(tmp_path)

        installer.ensure_credentials()

        installer.console.info.assert_any_call("Account ID: 123456789012")
        installer.run.assert_not_called()

    def test_declined_continues(self, tmp_path, monkeypatch):
        self._patch_client(monkeypatch, CredentialsError("sts.get_caller_identity", "NoCredentialsError", "none"))
        installer = _installer(tmp_path, answers=["n"])

        installer.ensure_credentials()

        installer.console.info.assert_called_with("Run 'aws configure' manually when ready.")
        installer.run.assert_not_called()

    def test_runs_aws_configure(self, tmp_path, monkeypatch):
        identity = CallerIdentity("123456789012", "arn:aws:iam::123456789012:user/dev", "AIDA")
        self._patch_client(
            monkeypatch, CredentialsError("sts.get_caller_identity", "NoCredentialsError", "none"), identity
        )
        installer = _installer(tmp_path, answers=["y"])

        installer.ensure_credentials()

        installer.run.assert_called_once_with(["aws", "configure"], check=False)
        installer.console.success.assert_called_with("AWS credentials configured successfully")

    def test_configure_still_failing(self, tmp_path, monkeypatch):
        error = CredentialsError("sts.get_caller_identity", "InvalidClientTokenId", "bad")
        self._patch_client(monkeypatch, error, error)
        installer = _installer(tmp_path, answers=["y"])

        with pytest.raises(PrerequisiteError, match="AWS credentials configuration failed"):
            installer.ensure_credentials()


# ---------------------------------------------------------------------------
# Filesystem
# ---------------------------------------------------------------------------


class TestFilesystem:
    def test_create_directories(self, toolkit_root):
        installer = _installer(toolkit_root)
        installer.create_directories()

        for name in ("logs", "config", "temp"):
            assert (toolkit_root / name).is_dir()
        assert (toolkit_root / "config" / "settings.json").is_file()

    @pytest.mark.skipif(os.name != "posix", reason="execute bits are POSIX only")
    def test_set_permissions(self, tmp_path):
        (tmp_path / "scripts").mkdir()
        for name in install.EXECUTABLES:
            path = tmp_path / name
            path.write_text("#!/usr/bin/env python3\n", encoding="utf-8")
            path.chmod(0o644)

        changed = _installer(tmp_path).set_permissions()

        assert len(changed) == len(install.EXECUTABLES)
        for name in install.EXECUTABLES:
            assert (tmp_path / name).stat().st_mode & stat.S_IXUSR

    @pytest.mark.skipif(os.name != "posix", reason="execute bits are POSIX only")
    def test_set_permissions_skips_missing_files(self, tmp_path):
        assert _installer(tmp_path).set_permissions() == []


# ---------------------------------------------------------------------------
# main()
# ---------------------------------------------------------------------------


class TestMain:
    def test_success(self, toolkit_root, monkeypatch):
        monkeypatch.setattr(Installer, "run_all", lambda self, skip_aws_cli=False: None)
        assert install.main(["--yes"]) == 0

    def test_prerequisite_failure(self, toolkit_root, monkeypatch):
        def fail(self, skip_aws_cli=False):
            raise PrerequisiteError("Missing required tools: curl")

        monkeypatch.setattr(Installer, "run_all", fail)
        assert install.main([]) == 1

        log_text = (toolkit_root / "logs" / "aws-toolkit.log").read_text(encoding="utf-8")
        assert "[ERROR] Missing required tools: curl" in log_text

    def test_interrupted(self, toolkit_root, monkeypatch):
        def interrupt(self, skip_aws_cli=False):
            raise KeyboardInterrupt()

        monkeypatch.setattr(Installer, "run_all", interrupt)
        assert install.main([]) == 130

    def test_skip_aws_cli_flag(self, toolkit_root, monkeypatch):
        seen = {}

        def record(self, skip_aws_cli=False):
            seen["skip"] = skip_aws_cli
            seen["yes"] = self.assume_yes

        monkeypatch.setattr(Installer, "run_all", record)
        install.main(["--skip-aws-cli", "-y"])
        assert seen == {"skip": True, "yes": True}
