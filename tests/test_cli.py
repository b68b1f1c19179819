import os

import pytest
from conftest import read_env_file

from apple_cert_toolkit import cli
from apple_cert_toolkit.errors import ErrorKind, ToolkitError
from apple_cert_toolkit.types import ProfileInfo


@pytest.fixture(autouse=True)
def no_action_inputs(monkeypatch) -> None:
    for name in list(os.environ):
        if name.startswith("INPUT_"):
            monkeypatch.delenv(name)


@pytest.fixture
def captured_install(monkeypatch) -> dict:
    captured: dict = {}
    monkeypatch.setattr(cli, "install_certificate", lambda options: captured.update(options=options))
    return captured


def test_install_reads_action_inputs(monkeypatch, captured_install, capsys) -> None:
    monkeypatch.setenv("INPUT_ENCODED-CERTIFICATE", "ZmFrZQ==")
    monkeypatch.setenv("INPUT_CERTIFICATE-PASSWORD", "theshakes")
    monkeypatch.setenv("INPUT_KEYCHAIN", "custom")
    monkeypatch.setenv("INPUT_KEYCHAINPASSWORD", "kc-pwd")
    monkeypatch.setenv("INPUT_CUSTOMKEYCHAINPATH", "/tmp/custom.keychain")

    rc = cli.main(["install"])

    assert rc == 0
    options = captured_install["options"]
    assert options.encoded_certificate == "ZmFrZQ=="
    assert options.certificate_password == "theshakes"
    assert options.keychain == "custom"
    assert options.keychain_password == "kc-pwd"
    assert options.custom_keychain_path == "/tmp/custom.keychain"
    assert options.signing_identity_override == ""

    out = capsys.readouterr().out
    assert "::add-mask::theshakes" in out
    assert "::add-mask::kc-pwd" in out


def test_install_flags_override_inputs(monkeypatch, captured_install) -> None:
    monkeypatch.setenv("INPUT_KEYCHAIN", "default")
    monkeypatch.setenv("INPUT_CERTIFICATE-PASSWORD", "from-input")

    rc = cli.main(
        [
            "install",
            "--encoded-certificate",
            "ZmFrZQ==",
            "--certificate-password",
            "",
            "--keychain",
            "temp",
            "--signing-identity",
            "Apple Distribution: Override",
        ]
    )

    assert rc == 0
    options = captured_install["options"]
    assert options.keychain == "temp"
    # An explicit empty password is kept rather than falling back to the input.
    assert options.certificate_password == ""
    assert options.signing_identity_override == "Apple Distribution: Override"


def test_install_without_keychain_fails(monkeypatch, captured_install, capsys) -> None:
    rc = cli.main(["install", "--encoded-certificate", "ZmFrZQ=="])

    assert rc == 1
    assert captured_install == {}
    assert "::error::Input required and not supplied: keychain" in capsys.readouterr().out


def test_install_error_becomes_failure(monkeypatch, capsys) -> None:
    def boom(_options) -> None:
        raise ToolkitError(ErrorKind.CERTIFICATE, "Certificate dates are invalid or undefined.")

    monkeypatch.setattr(cli, "install_certificate", boom)

    rc = cli.main(["install", "--encoded-certificate", "ZmFrZQ==", "--keychain", "temp"])

    assert rc == 1
    assert "::error::Certificate dates are invalid or undefined." in capsys.readouterr().out


@pytest.mark.parametrize(
    ("argv", "env", "want"),
    [
        (["cleanup"], {}, False),
        (["cleanup", "--remove-profile"], {}, True),
        (["cleanup"], {"INPUT_REMOVEPROFILE": "true"}, True),
    ],
)
def test_cleanup_remove_profile_switch(monkeypatch, argv, env, want) -> None:
    for k, v in env.items():
        monkeypatch.setenv(k, v)
    captured: dict = {}
    monkeypatch.setattr(cli, "cleanup", lambda **kwargs: captured.update(kwargs))

    assert cli.main(argv) == 0
    assert captured == {"remove_profile": want}


def test_install_profile_exports_uuid(monkeypatch, github_env, tmp_path) -> None:
    profile = tmp_path / "App.mobileprovision"
    monkeypatch.setattr(
        cli,
        "install_provisioning_profile",
        lambda path: ProfileInfo(uuid="1234-ABCD", name="App Store", installed_path=path),
    )

    assert cli.main(["install-profile", str(profile)]) == 0

    assert read_env_file(github_env) == {
        "APPLE_PROV_PROFILE_UUID": "1234-ABCD",
        "provisioningProfileUuid": "1234-ABCD",
        "provisioningProfileName": "App Store",
    }


def test_install_profile_requires_path(capsys) -> None:
    assert cli.main(["install-profile"]) == 1
    assert "provisioning-profile" in capsys.readouterr().out


def test_profile_info_prints_summary(monkeypatch, capsys) -> None:
    monkeypatch.setattr(cli, "get_macos_profile_type", lambda _path: "developer-id")
    monkeypatch.setattr(cli, "get_provisioning_profile_name", lambda _path: "Mac Profile")
    seen: dict = {}

    def fake_cloud(path: str, export_method: str) -> str:
        seen["export_method"] = export_method
        return "Production"

    monkeypatch.setattr(cli, "get_cloud_entitlement", fake_cloud)

    assert cli.main(["profile-info", "/tmp/App.provisionprofile", "--platform", "macos"]) == 0

    out = capsys.readouterr().out
    assert "Name  : Mac Profile" in out
    assert "Type  : developer-id" in out
    assert "iCloud: Production" in out
    # Export method defaults to the detected profile type.
    assert seen["export_method"] == "developer-id"


def test_find_identity_defaults_to_temp_keychain(monkeypatch, capsys) -> None:
    seen: list[str] = []

    def fake_find(path: str) -> str:
        seen.append(path)
        return "Apple Development: Example"

    monkeypatch.setattr(cli, "find_signing_identity", fake_find)
    monkeypatch.setattr(cli, "temp_keychain_path", lambda: "/tmp/ios_signing_temp.keychain")

    assert cli.main(["find-identity"]) == 0
    assert seen == ["/tmp/ios_signing_temp.keychain"]
    assert capsys.readouterr().out.strip() == "Apple Development: Example"


def test_missing_subcommand_exits() -> None:
    with pytest.raises(SystemExit):
        cli.main([])


def test_os_error_becomes_failure(monkeypatch, capsys, tmp_path) -> None:
    def denied(_path: str) -> ProfileInfo:
        raise PermissionError(13, "Permission denied", "/Library/MobileDevice")

    monkeypatch.setattr(cli, "install_provisioning_profile", denied)

    rc = cli.main(["install-profile", str(tmp_path / "App.mobileprovision")])

    assert rc == 1
    assert "::error::[Errno 13] Permission denied" in capsys.readouterr().out
