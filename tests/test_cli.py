from __future__ import annotations

from dataclasses import replace
from pathlib import Path

import pytest
from typer.testing import CliRunner

from patchctl import cli
from patchctl.core.errors import RemoteExecutionError, RootRequiredError
from patchctl.core.model import PackageMetadata, Patch, PatchOutcome, ProcessState, SelectionResult
from patchctl.core.service import DeployResult, PatchReport
from patchctl.deploy.installer import InstallResult

BUNDLE = """
name: example-patches
patches:
  - name: Hide ads
    description: Removes banner ads.
    compatible_packages:
      - name: com.example.app
        versions: ["2.0"]
  - name: Custom branding
    use: false
    options:
      app-name:
        default: Example
"""

runner = CliRunner()


@pytest.fixture
def bundle(tmp_path: Path) -> Path:
    path = tmp_path / "bundle.yaml"
    path.write_text(BUNDLE, encoding="utf-8")
    return path


class FakeService:
    configs: list = []

    def __init__(self, **kwargs) -> None:
        self.kwargs = kwargs

    def patch(self, config):
        FakeService.configs.append(config)
        patch = Patch(name="Hide ads")
        broken = Patch(name="Broken patch")
        return PatchReport(
            output=config.output,
            package=PackageMetadata(name="com.example.app", version="2.0"),
            selection=SelectionResult(decisions=()),
            outcomes=(
                PatchOutcome(patch=patch),
                PatchOutcome(patch=broken, error=RuntimeError("method not found")),
            ),
            warnings=("Cannot set options of 'Spoof client': patch is not selected",),
            deployment=None,
        )

    def deploy(self, descriptor, serial=None, *, mount=True, log_output=True):
        return DeployResult(
            install=InstallResult(serial=serial or "emulator-5554", package_name=descriptor.package_name, steps=()),
            state=ProcessState.EXITED if mount else None,
        )


def test_list_command(bundle: Path) -> None:
    result = runner.invoke(cli.app, ["list", "-b", str(bundle)])
    assert result.exit_code == 0
    assert "0: Hide ads (enabled)" in result.stdout
    assert "com.example.app: 2.0" in result.stdout
    assert "1: Custom branding (disabled)" in result.stdout
    assert "option app-name='Example'" in result.stdout


def test_select_command(bundle: Path) -> None:
    result = runner.invoke(
        cli.app,
        ["select", "com.example.app", "3.0", "-b", str(bundle), "--ii", "1"],
    )
    assert result.exit_code == 0
    assert "- 0: Hide ads (incompatible)" in result.stdout
    assert "+ 1: Custom branding (included explicitly)" in result.stdout
    assert "1 of 2 patches selected" in result.stdout


def test_select_command_with_force_and_exclude(bundle: Path) -> None:
    result = runner.invoke(
        cli.app,
        ["select", "com.example.app", "3.0", "-b", str(bundle), "-f", "-e", "Custom branding", "-i", "Custom branding"],
    )
    assert result.exit_code == 0
    assert "+ 0: Hide ads (included by default)" in result.stdout
    assert "- 1: Custom branding (excluded manually)" in result.stdout


def test_missing_bundle_error_is_clean(tmp_path: Path) -> None:
    result = runner.invoke(cli.app, ["list", "-b", str(tmp_path / "missing.yaml")])
    assert result.exit_code == 1
    assert "Error: Patch bundle" in result.stderr
    assert "Traceback" not in result.stdout
    assert "Traceback" not in result.stderr


def test_patch_command(monkeypatch: pytest.MonkeyPatch, bundle: Path, tmp_path: Path) -> None:
    FakeService.configs.clear()
    monkeypatch.setattr(cli, "PatchService", FakeService)
    monkeypatch.setattr(cli, "load_engine_factory", lambda name=None: object())
    monkeypatch.setattr(cli, "load_signer", lambda name=None: object())
    apk = tmp_path / "app.apk"
    apk.write_bytes(b"PK")

    result = runner.invoke(
        cli.app,
        [
            "patch",
            str(apk),
            "-b",
            str(bundle),
            "--exclusive",
            "-i",
            "Hide ads",
            "--ei",
            "1",
            "-O",
            "Custom branding:app-name=Mine",
            "-o",
            str(tmp_path / "out.apk"),
        ],
    )

    assert result.exit_code == 0
    assert "Applied 1 of 2 patches to com.example.app 2.0" in result.stdout
    assert "Failed: Broken patch: method not found" in result.stderr
    assert "Warning: Cannot set options of 'Spoof client'" in result.stderr

    config = FakeService.configs[0]
    assert config.selection.exclusive is True
    assert config.selection.include == frozenset({"Hide ads"})
    assert config.selection.exclude_index == frozenset({1})
    assert config.options[0].value == "Mine"
    assert config.deploy is False


def test_patch_command_deploy_flag_targets_sole_device(
    monkeypatch: pytest.MonkeyPatch, bundle: Path, tmp_path: Path
) -> None:
    FakeService.configs.clear()
    monkeypatch.setattr(cli, "PatchService", FakeService)
    monkeypatch.setattr(cli, "load_engine_factory", lambda name=None: object())
    monkeypatch.setattr(cli, "load_signer", lambda name=None: object())
    apk = tmp_path / "app.apk"
    apk.write_bytes(b"PK")

    result = runner.invoke(cli.app, ["patch", str(apk), "-b", str(bundle), "--deploy", "--mount"])

    assert result.exit_code == 0
    assert FakeService.configs[0].device_serial == ""
    assert FakeService.configs[0].mount is True


def test_patch_command_missing_apk(bundle: Path, tmp_path: Path) -> None:
    result = runner.invoke(cli.app, ["patch", str(tmp_path / "missing.apk"), "-b", str(bundle)])
    assert result.exit_code == 1
    assert "Error: APK file" in result.stderr


def test_deploy_command(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr(cli, "PatchService", FakeService)
    apk = tmp_path / "app.apk"
    apk.write_bytes(b"PK")

    result = runner.invoke(cli.app, ["deploy", str(apk), "--package", "com.example.app"])

    assert result.exit_code == 0
    assert "Installed com.example.app on emulator-5554" in result.stdout
    assert "App closed, continuing." in result.stdout


@pytest.mark.parametrize(
    "error",
    [
        RootRequiredError("emulator-5554"),
        RemoteExecutionError("mount apk", "emulator-5554", exit_code=255),
    ],
)
def test_deploy_command_error_is_clean(monkeypatch: pytest.MonkeyPatch, tmp_path: Path, error) -> None:
    class FailingService(FakeService):
        def deploy(self, descriptor, serial=None, *, mount=True, log_output=True):
            raise error

    monkeypatch.setattr(cli, "PatchService", FailingService)
    apk = tmp_path / "app.apk"
    apk.write_bytes(b"PK")

    result = runner.invoke(cli.app, ["deploy", str(apk), "--package", "com.example.app", "-d", "emulator-5554"])

    assert result.exit_code == 1
    assert f"Error: {error}" in result.stderr
    assert "emulator-5554" in result.stderr
    assert "Traceback" not in result.stderr


def test_patch_command_reports_failures_and_deploy_error(
    monkeypatch: pytest.MonkeyPatch, bundle: Path, tmp_path: Path
) -> None:
    class UndeployableService(FakeService):
        def patch(self, config):
            report = super().patch(config)
            return replace(report, deployment_error=RootRequiredError("emulator-5554"))

    monkeypatch.setattr(cli, "PatchService", UndeployableService)
    monkeypatch.setattr(cli, "load_engine_factory", lambda name=None: object())
    monkeypatch.setattr(cli, "load_signer", lambda name=None: object())
    apk = tmp_path / "app.apk"
    apk.write_bytes(b"PK")

    result = runner.invoke(cli.app, ["patch", str(apk), "-b", str(bundle), "--deploy", "--mount"])

    assert result.exit_code == 1
    assert "Applied 1 of 2 patches" in result.stdout
    assert "Failed: Broken patch: method not found" in result.stderr
    assert "Error: Root required on emulator-5554" in result.stderr


def test_deploy_command_reports_cancelled_monitoring(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    class CancelledService(FakeService):
        def deploy(self, descriptor, serial=None, *, mount=True, log_output=True):
            result = super().deploy(descriptor, serial, mount=mount, log_output=log_output)
            return replace(result, state=ProcessState.NOT_STARTED, cancelled=True)

    monkeypatch.setattr(cli, "PatchService", CancelledService)
    apk = tmp_path / "app.apk"
    apk.write_bytes(b"PK")

    result = runner.invoke(cli.app, ["deploy", str(apk), "--package", "com.example.app"])

    assert result.exit_code == 0
    assert "Monitoring cancelled." in result.stdout
    assert "App did not start." not in result.stdout
