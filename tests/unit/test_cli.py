import base64
import json
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError, NoCredentialsError, ProfileNotFound
from cryptography.hazmat.primitives.asymmetric import padding

from ec2remote.__main__ import EC2Remote, count_failures
from ec2remote.cli.main import (
    EC2RemoteCLI,
    format_plan_line,
    handle_value_error,
    main,
    print_error_hints,
)
from ec2remote.constants import EXIT_CONFIG_ERROR, EXIT_ERROR

INSTANCES = {
    "i-111": {"PrivateIpAddress": "10.0.0.5", "Platform": "windows", "ImageId": "ami-win"},
    "i-222": {"PrivateIpAddress": "10.0.0.9", "ImageId": "ami-ubuntu"},
    "i-333": {"PrivateIpAddress": "10.0.0.7", "ImageId": "ami-al2"},
}

IMAGES = {"ami-ubuntu": "ubuntu-20.04", "ami-al2": "amzn2-ami-hvm-2.0"}


class FakeBotoSession:
    """Stand-in for boto3.Session handing out one shared EC2 client."""

    def __init__(self, ec2_client: Any, **kwargs: Any) -> None:
        self.ec2_client = ec2_client
        self.kwargs = kwargs

    def client(self, service_name: str, region_name: str | None = None) -> Any:
        assert service_name == "ec2"
        return self.ec2_client


def make_ec2_client(key_name: str = "devkey", password_data: str = "") -> MagicMock:
    client = MagicMock()

    def describe_instances(InstanceIds):
        instance_id = InstanceIds[0]
        if instance_id not in INSTANCES:
            raise ClientError(
                {"Error": {"Code": "InvalidInstanceID.NotFound", "Message": "missing"}},
                "DescribeInstances",
            )
        instance = {"InstanceId": instance_id, "KeyName": key_name, **INSTANCES[instance_id]}
        return {"Reservations": [{"Instances": [instance]}]}

    def describe_images(ImageIds):
        return {"Images": [{"ImageId": ImageIds[0], "Name": IMAGES[ImageIds[0]]}]}

    client.describe_instances.side_effect = describe_instances
    client.describe_images.side_effect = describe_images
    client.get_password_data.return_value = {"PasswordData": password_data}
    return client


@pytest.fixture
def ec2_client() -> MagicMock:
    return make_ec2_client()


@pytest.fixture
def sessions() -> list[FakeBotoSession]:
    return []


@pytest.fixture
def session_factory(ec2_client, sessions):
    def _factory(**kwargs: Any) -> FakeBotoSession:
        session = FakeBotoSession(ec2_client, **kwargs)
        sessions.append(session)
        return session

    return _factory


@pytest.fixture
def app(session_factory, spawner, config_file, monkeypatch) -> EC2Remote:
    monkeypatch.delenv("AWS_REGION", raising=False)
    monkeypatch.delenv("AWS_DEFAULT_REGION", raising=False)
    return EC2Remote(
        session_factory=session_factory, spawner=spawner, command_runner=MagicMock()
    )


def test_connect_ubuntu_instance_launches_ssh(app, spawner, key_dir, sessions) -> None:
    results = app.connect("i-222", env="dev", key_path=str(key_dir))

    assert results[0]["status"] == "launched"
    assert results[0]["username"] == "ubuntu"
    assert results[0]["pid"] == 4243
    assert spawner.launches == [
        ["ssh", "-i", str(key_dir / "devkey.pem"), "ubuntu@10.0.0.9", "-p", "22"]
    ]
    assert sessions[0].kwargs == {"profile_name": "dev", "region_name": "us-east-1"}


def test_connect_uses_environment_key_directory(
    app, spawner, key_dir, write_config
) -> None:
    write_config({"defaults": {"key_root": str(key_dir.parent)}})

    results = app.connect("i-333", env="dev")

    assert results[0]["key_file"] == str(key_dir / "devkey.pem")
    assert spawner.launches[0][3] == "ec2-user@10.0.0.7"


def test_connect_windows_instance_decrypts_password(
    session_factory, spawner, config_file, rsa_private_key, rsa_key_file, ec2_client
) -> None:
    ciphertext = rsa_private_key.public_key().encrypt(b"S3cret!pw", padding.PKCS1v15())
    ec2_client.get_password_data.return_value = {
        "PasswordData": base64.b64encode(ciphertext).decode("ascii")
    }
    app = EC2Remote(
        session_factory=session_factory, spawner=spawner, command_runner=MagicMock()
    )

    results = app.connect(
        "i-111", key_path=str(rsa_key_file.parent), key_name="winkey"
    )

    assert results[0]["status"] == "launched"
    assert results[0]["protocol"] == "RDP"
    assert results[0]["username"] == "Administrator"
    assert len(spawner.launches) == 1
    assert spawner.launches[0][0] in ("xfreerdp", "mstsc")
    ec2_client.get_password_data.assert_called_once_with(InstanceId="i-111")


def test_connect_reports_failures_per_instance(app, spawner, key_dir) -> None:
    results = app.connect("i-missing,i-222", key_path=str(key_dir))

    assert [result["status"] for result in results] == ["failed", "launched"]
    assert results[0]["error_type"] == "ExternalQueryFailed"
    assert count_failures(results) == 1
    assert len(spawner.launches) == 1


def test_plan_does_not_launch_or_decrypt(app, spawner, key_dir, ec2_client) -> None:
    results = app.plan("i-111", "i-222", key_path=str(key_dir))

    assert [result["status"] for result in results] == ["planned", "planned"]
    assert results[0]["protocol"] == "RDP"
    assert results[0]["port"] == 3389
    assert spawner.launches == []
    ec2_client.get_password_data.assert_not_called()


def test_plan_json_output(app, key_dir) -> None:
    output = app.plan("i-222", key_path=str(key_dir), json_output=True)

    assert json.loads(output)[0]["address"] == "10.0.0.9"


def test_plan_rejects_invalid_port(app, key_dir) -> None:
    with pytest.raises(ValueError, match="Invalid port value"):
        app.plan("i-111", key_path=str(key_dir), port="abc")


def test_keys_lists_environment_keys(app, key_dir) -> None:
    assert app.keys(key_path=str(key_dir)) == [str(key_dir / "devkey.pem")]


def test_keys_warns_when_directory_is_empty(app, tmp_path, caplog) -> None:
    assert app.keys(key_path=str(tmp_path / "nothing")) == []
    assert "No private keys found" in caplog.text


def test_init_writes_template(app, config_file: Path, capsys) -> None:
    app.init()

    assert "environments:" in config_file.read_text()
    assert "Created" in capsys.readouterr().out


def test_init_refuses_to_overwrite(app, config_file: Path, capsys) -> None:
    config_file.write_text("defaults: {}\n")

    with pytest.raises(SystemExit) as exc_info:
        app.init()

    assert exc_info.value.code == 1
    assert "already exists" in capsys.readouterr().err
    assert config_file.read_text() == "defaults: {}\n"


def test_init_force_overwrites(app, config_file: Path) -> None:
    config_file.write_text("defaults: {}\n")

    app.init(force=True)

    assert "vars:" in config_file.read_text()


def test_cli_connect_exits_nonzero_on_partial_failure(
    session_factory, spawner, config_file, key_dir
) -> None:
    cli = EC2RemoteCLI(session_factory=session_factory, spawner=spawner)

    with pytest.raises(SystemExit) as exc_info:
        cli.connect("i-222", "i-missing", key_path=str(key_dir))

    assert exc_info.value.code == EXIT_ERROR
    assert len(spawner.launches) == 1


def test_cli_connect_succeeds_without_exit(
    session_factory, spawner, config_file, key_dir
) -> None:
    cli = EC2RemoteCLI(session_factory=session_factory, spawner=spawner)

    assert cli.connect("i-222", key_path=str(key_dir)) is None


def test_cli_plan_prints_one_line_per_instance(
    session_factory, spawner, config_file, key_dir, capsys
) -> None:
    cli = EC2RemoteCLI(session_factory=session_factory, spawner=spawner)

    cli.plan("i-222", "i-333", key_path=str(key_dir))

    lines = capsys.readouterr().out.strip().splitlines()
    assert lines[0].startswith("i-222: SSH ubuntu@10.0.0.9:22")
    assert lines[1].startswith("i-333: SSH ec2-user@10.0.0.7:22")


def test_format_plan_line_failure() -> None:
    line = format_plan_line(
        {
            "instance_id": "i-9",
            "status": "failed",
            "error": "boom",
            "error_type": "KeyNotFound",
        }
    )

    assert line == "i-9: FAILED KeyNotFound: boom"


def test_handle_value_error_exits_with_config_code(capsys) -> None:
    with pytest.raises(SystemExit) as exc_info:
        handle_value_error(ValueError("bad port"), debug_mode=False)

    assert exc_info.value.code == EXIT_CONFIG_ERROR
    assert "bad port" in capsys.readouterr().err



def test_print_error_hints_explains_missing_permissions_once(capsys) -> None:
    failure = {
        "status": "failed",
        "error_type": "ExternalQueryFailed",
        "error_code": "UnauthorizedOperation",
    }

    print_error_hints([failure, dict(failure), {"status": "launched"}])

    err = capsys.readouterr().err
    assert err.count("Insufficient IAM permissions") == 1
    assert "ec2:GetPasswordData" in err


def test_print_error_hints_ignores_instance_level_failures(capsys) -> None:
    print_error_hints([{"status": "failed", "error_type": "KeyNotFound"}])

    assert capsys.readouterr().err == ""


@pytest.fixture
def run_main(monkeypatch, config_file):
    """Run the console entry point against a patched boto3 session."""

    def _run(ec2_client: Any, *argv: str) -> int:
        monkeypatch.setattr(
            "boto3.Session", lambda **kwargs: FakeBotoSession(ec2_client, **kwargs)
        )
        monkeypatch.setattr("sys.argv", ["ec2remote", *argv])

        with pytest.raises(SystemExit) as exc_info:
            main()

        return exc_info.value.code

    return _run


def test_main_missing_credentials_prints_hint(run_main, key_dir, capsys) -> None:
    client = MagicMock()
    client.describe_instances.side_effect = NoCredentialsError()

    code = run_main(client, "connect", "i-1", f"--key_path={key_dir}")

    assert code == EXIT_ERROR
    assert "Configure your credentials" in capsys.readouterr().err


def test_main_expired_token_prints_hint(run_main, key_dir, capsys) -> None:
    client = MagicMock()
    client.describe_instances.side_effect = ClientError(
        {"Error": {"Code": "ExpiredToken", "Message": "expired"}}, "DescribeInstances"
    )

    code = run_main(client, "plan", "i-1", "i-2", f"--key_path={key_dir}")

    err = capsys.readouterr().err
    assert code == EXIT_ERROR
    assert err.count("AWS credentials have expired") == 1


def test_main_unusable_credentials_exits_with_error(
    monkeypatch, config_file, key_dir, capsys
) -> None:
    def session_factory(**kwargs: Any) -> Any:
        raise ProfileNotFound(profile=kwargs.get("profile_name") or "from-env")

    monkeypatch.setattr("boto3.Session", session_factory)
    monkeypatch.setattr(
        "sys.argv", ["ec2remote", "connect", "i-1", "--env=ghost", f"--key_path={key_dir}"]
    )

    with pytest.raises(SystemExit) as exc_info:
        main()

    assert exc_info.value.code == EXIT_ERROR
    assert "Could not initialize the default AWS credentials" in capsys.readouterr().err
