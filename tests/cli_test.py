"""Test the command-line interface."""

import json
from pathlib import Path

import pytest

from imageset_sync.cli import main

ENVIRONMENT = {
    "IMAGE_SOURCE": "https://registry.example.com/api/v1/tags",
    "GOOGLE_SERVICE_ACCOUNT": "/secrets/service-account.json",
    "GOOGLE_SHEET_ID": "sheet-id",
    "GOOGLE_CREDENTIALS": "/secrets/credentials.json",
    "GOOGLE_TOKEN": "/secrets/token.json",
    "GOOGLE_FORM_ID": "script-id",
}


@pytest.fixture
def environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Synchronizer settings in the environment, without a kubeconfig."""
    for key, value in ENVIRONMENT.items():
        monkeypatch.setenv(key, value)
    monkeypatch.delenv("OPENSHIFT_KUBECONFIG", raising=False)


@pytest.mark.usefixtures("environment")
def test_dry_run(
    support_dir: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    """Test a dry run from a local registry document."""
    dump_file = tmp_path / "images.json"
    status = main(
        [
            "--dry-run",
            "--input-file",
            str(support_dir / "registry.json"),
            "--dump-file",
            str(dump_file),
        ]
    )
    assert status == 0
    out = capsys.readouterr().out
    assert "manifestDigest" in out
    assert "4.13.19" in out
    assert len(json.loads(dump_file.read_text())["data"]) == 3


@pytest.mark.usefixtures("environment")
def test_malformed_input(tmp_path: Path) -> None:
    """Test that an undecodable registry document fails the run."""
    input_file = tmp_path / "registry.json"
    input_file.write_text('{"tags": ')
    assert main(["--dry-run", "--input-file", str(input_file)]) == 1


@pytest.mark.usefixtures("environment")
def test_unwritable_dump_file(support_dir: Path, tmp_path: Path) -> None:
    """Test that a dump file that cannot be written fails the run."""
    status = main(
        [
            "--dry-run",
            "--input-file",
            str(support_dir / "registry.json"),
            "--dump-file",
            str(tmp_path / "missing" / "images.json"),
        ]
    )
    assert status == 1


def test_missing_configuration(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test that missing settings fail before anything runs."""
    for key in [*ENVIRONMENT, "OPENSHIFT_KUBECONFIG"]:
        monkeypatch.delenv(key, raising=False)
    assert main([]) == 1


def test_config_file_with_skips(
    monkeypatch: pytest.MonkeyPatch, support_dir: Path, tmp_path: Path
) -> None:
    """Test a config file run that only lists images."""
    for key in [*ENVIRONMENT, "OPENSHIFT_KUBECONFIG"]:
        monkeypatch.delenv(key, raising=False)
    config_file = tmp_path / "config.yaml"
    config_file.write_text(
        f"imageSource: {ENVIRONMENT['IMAGE_SOURCE']}\n"
        f"inputFile: {support_dir / 'registry.json'}\n"
    )
    status = main(
        ["-c", str(config_file), "--skip", "sheet,sort,form", "--debug"]
    )
    assert status == 0


def test_unknown_skip(support_dir: Path, tmp_path: Path) -> None:
    """Test that an unknown step name is a configuration error."""
    config_file = tmp_path / "config.yaml"
    config_file.write_text(f"inputFile: {support_dir / 'registry.json'}\n")
    assert main(["-c", str(config_file), "--skip", "deploy"]) == 1
