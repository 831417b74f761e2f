"""Typer CLI entrypoint."""

from __future__ import annotations

import logging
from pathlib import Path

import typer

from patchctl.core.config import DEFAULT_KEYSTORE_ALIAS, DEFAULT_SIGNER, PatchConfig
from patchctl.core.engine import load_engine_factory, load_signer
from patchctl.core.errors import PatchctlError
from patchctl.core.model import DeploymentDescriptor, PackageMetadata, ProcessState, SelectionRequest
from patchctl.core.options import parse_option_assignment
from patchctl.core.service import DeployResult, PatchService

app = typer.Typer(help="Select patches for an APK and deploy the result to a rooted device")

BundleOption = typer.Option(..., "-b", "--patch-bundle", help="One or more patch bundle files.")
IncludeOption = typer.Option([], "-i", "--include", help="Patches to include by name.")
IncludeIndexOption = typer.Option(
    [], "--ii", help="Patches to include by index in the combined list of all supplied bundles."
)
ExcludeOption = typer.Option([], "-e", "--exclude", help="Patches to exclude by name.")
ExcludeIndexOption = typer.Option(
    [], "--ei", help="Patches to exclude by index in the combined list of all supplied bundles."
)
ExclusiveOption = typer.Option(
    False, "--exclusive", help="Only include patches that are explicitly specified to be included."
)
ForceOption = typer.Option(
    False, "-f", "--force", help="Bypass compatibility checks for the supplied APK's version."
)


@app.callback()
def main(verbose: bool = typer.Option(False, "-v", "--verbose", help="Show debug output.")) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
        force=True,
    )


def _build_service(**kwargs) -> PatchService:
    return PatchService(**kwargs)


def _selection(
    include: list[str],
    include_index: list[int],
    exclude: list[str],
    exclude_index: list[int],
    exclusive: bool,
    force: bool,
) -> SelectionRequest:
    return SelectionRequest(
        include=frozenset(include),
        include_index=frozenset(include_index),
        exclude=frozenset(exclude),
        exclude_index=frozenset(exclude_index),
        exclusive=exclusive,
        force=force,
    )


def _echo_warnings(warnings: tuple[str, ...]) -> None:
    for warning in warnings:
        typer.echo(f"Warning: {warning}", err=True)


def _echo_deployment(result: DeployResult) -> None:
    typer.echo(f"Installed {result.install.package_name} on {result.install.serial}")
    if result.cancelled:
        typer.echo("Monitoring cancelled.")
    elif result.state is ProcessState.EXITED:
        typer.echo("App closed, continuing.")
    elif result.state is ProcessState.NOT_STARTED:
        typer.echo("App did not start.")


@app.command("list")
def list_patches(bundles: list[Path] = BundleOption) -> None:
    """List patches of the supplied bundles with their index."""
    try:
        service = _build_service()
        loaded = service.load(bundles)
        _echo_warnings(loaded.warnings)
        if not loaded.patches:
            typer.echo("No patches loaded")
            raise typer.Exit(code=1)

        for index, patch in enumerate(loaded.patches):
            enabled = "enabled" if patch.use else "disabled"
            typer.echo(f"{index}: {patch.name} ({enabled})")
            if patch.description:
                typer.echo(f"  {patch.description}")
            for package in patch.compatible_packages or ():
                versions = ", ".join(package.versions) if package.versions is not None else "any"
                typer.echo(f"  {package.name}: {versions or 'none'}")
            for key, option in sorted(patch.options.items()):
                typer.echo(f"  option {key}={option.default!r}")
    except PatchctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("select")
def select(
    package: str,
    version: str,
    bundles: list[Path] = BundleOption,
    include: list[str] = IncludeOption,
    include_index: list[int] = IncludeIndexOption,
    exclude: list[str] = ExcludeOption,
    exclude_index: list[int] = ExcludeIndexOption,
    exclusive: bool = ExclusiveOption,
    force: bool = ForceOption,
) -> None:
    """Show which patches would be applied to PACKAGE at VERSION."""
    try:
        service = _build_service()
        loaded = service.load(bundles)
        _echo_warnings(loaded.warnings)
        result = service.select(
            loaded.patches,
            _selection(include, include_index, exclude, exclude_index, exclusive, force),
            PackageMetadata(name=package, version=version),
        )
        for decision in result.decisions:
            mark = "+" if decision.included else "-"
            line = f"{mark} {decision.index}: {decision.patch.name} ({decision.reason})"
            if decision.detail:
                line += f": {decision.detail}"
            typer.echo(line)
        typer.echo(f"{len(result.patches)} of {len(result.decisions)} patches selected")
    except PatchctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("patch")
def patch(
    apk: Path,
    bundles: list[Path] = BundleOption,
    include: list[str] = IncludeOption,
    include_index: list[int] = IncludeIndexOption,
    exclude: list[str] = ExcludeOption,
    exclude_index: list[int] = ExcludeIndexOption,
    options: list[str] = typer.Option(
        [], "-O", "--option", help="Patch option as 'Patch name:key=value'."
    ),
    exclusive: bool = ExclusiveOption,
    force: bool = ForceOption,
    output: Path | None = typer.Option(None, "-o", "--out", help="Path to save the patched APK to."),
    device_serial: str | None = typer.Option(
        None, "-d", "--device-serial", help="Serial of the device to deploy to."
    ),
    deploy: bool = typer.Option(
        False, "--deploy", help="Deploy to the only attached device when no serial is given."
    ),
    mount: bool = typer.Option(False, "--mount", help="Install by mounting the patched APK."),
    logcat: bool = typer.Option(True, "--logcat/--no-logcat", help="Relay the app log while it runs."),
    keystore: Path | None = typer.Option(None, "--keystore", help="Keystore to sign the APK with."),
    keystore_password: str | None = typer.Option(None, "--keystore-password"),
    keystore_alias: str = typer.Option(DEFAULT_KEYSTORE_ALIAS, "--keystore-entry-alias"),
    keystore_entry_password: str = typer.Option("", "--keystore-entry-password"),
    signer: str = typer.Option(DEFAULT_SIGNER, "--signer", help="Name of the signer."),
    temporary_path: Path | None = typer.Option(
        None, "-t", "--temporary-files-path", help="Path to the temporary files directory."
    ),
    purge: bool = typer.Option(False, "-p", "--purge", help="Purge temporary files after patching."),
    engine: str | None = typer.Option(None, "--engine", help="Name of the patch engine to use."),
) -> None:
    """Patch APK with the selected patches, sign it and optionally deploy it."""
    try:
        if device_serial is None and deploy:
            device_serial = ""
        config = PatchConfig.from_arguments(
            apk,
            bundles,
            selection=_selection(include, include_index, exclude, exclude_index, exclusive, force),
            options=[parse_option_assignment(text) for text in options],
            output=output,
            temporary_path=temporary_path,
            keystore=keystore,
            keystore_password=keystore_password,
            keystore_alias=keystore_alias,
            keystore_entry_password=keystore_entry_password,
            signer=signer,
            device_serial=device_serial,
            mount=mount,
            log_output=logcat,
            purge=purge,
        )
        service = _build_service(
            engine_factory=load_engine_factory(engine),
            signer=None if mount else load_signer(),
        )
        report = service.patch(config)
    except PatchctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None
    except KeyboardInterrupt:
        typer.echo("Interrupted", err=True)
        raise typer.Exit(code=130) from None

    _echo_warnings(report.warnings)
    for failure in report.failures:
        typer.echo(f"Failed: {failure.patch.name}: {failure.error}", err=True)
    applied = len(report.outcomes) - len(report.failures)
    typer.echo(f"Applied {applied} of {len(report.outcomes)} patches to {report.package.name} {report.package.version}")
    typer.echo(f"Saved to {report.output}")
    if report.deployment is not None:
        _echo_deployment(report.deployment)
    if report.deployment_error is not None:
        typer.echo(f"Error: {report.deployment_error}", err=True)
        raise typer.Exit(code=1)


@app.command("deploy")
def deploy(
    apk: Path,
    package: str = typer.Option(..., "--package", help="Package name of the app."),
    device_serial: str | None = typer.Option(
        None, "-d", "--device-serial", help="Serial of the device. Defaults to the only attached device."
    ),
    mount: bool = typer.Option(True, "--mount/--install", help="Mount the APK or install it."),
    logcat: bool = typer.Option(True, "--logcat/--no-logcat", help="Relay the app log while it runs."),
) -> None:
    """Deploy an already patched APK to a rooted device."""
    if not apk.is_file():
        typer.echo(f"Error: APK file {apk} does not exist", err=True)
        raise typer.Exit(code=1)
    try:
        service = _build_service()
        result = service.deploy(
            DeploymentDescriptor(artifact=apk, package_name=package),
            device_serial,
            mount=mount,
            log_output=logcat,
        )
    except PatchctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None
    except KeyboardInterrupt:
        typer.echo("Interrupted", err=True)
        raise typer.Exit(code=130) from None

    _echo_deployment(result)


def run() -> None:
    app()


if __name__ == "__main__":
    run()
