import httpx
from typer.testing import CliRunner

from media_intake import cli
from media_intake.services.storage import LocalBucket

runner = CliRunner()


class Recorder:
    def __init__(self, status=200, text="https://files.example.test/files/a_x.txt"):
        self.status = status
        self.text = text
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status, text=self.text)


def patch_client(monkeypatch, handler):
    real_client = httpx.Client

    def factory(*args, **kwargs):
        kwargs["transport"] = httpx.MockTransport(handler)
        return real_client(*args, **kwargs)

    monkeypatch.setattr(cli.httpx, "Client", factory)


def test_upload_prints_url(tmp_path, monkeypatch):
    target = tmp_path / "shot.png"
    target.write_bytes(b"png")
    handler = Recorder(text="https://images.example.test/images/shot_x.png")
    patch_client(monkeypatch, handler)

    result = runner.invoke(cli.app, ["upload", str(target), "--auth-key", "k", "--endpoint", "http://up/upload"])

    assert result.exit_code == 0, result.output
    assert "https://images.example.test/images/shot_x.png" in result.output
    request = handler.requests[0]
    assert request.method == "PUT"
    assert request.headers["X-Auth-Key"] == "k"
    body = request.read()
    assert b'name="file"; filename="shot.png"' in body
    assert b"Original URL" in body


def test_upload_optimized_and_name(tmp_path, monkeypatch):
    target = tmp_path / "tmp123.png"
    target.write_bytes(b"png")
    handler = Recorder()
    patch_client(monkeypatch, handler)

    result = runner.invoke(cli.app, [
        "upload", str(target), "--auth-key", "k", "--endpoint", "http://up/upload",
        "--name", "Screenshot_2024.png", "--optimized",
    ])

    assert result.exit_code == 0, result.output
    body = handler.requests[0].read()
    assert b"Screenshot_2024.png" in body
    assert b"Preview-Optimized URL" in body


def test_upload_failure_exit_code(tmp_path, monkeypatch):
    target = tmp_path / "a.txt"
    target.write_text("a")
    patch_client(monkeypatch, Recorder(status=401, text="Unauthorized"))

    result = runner.invoke(cli.app, ["upload", str(target), "--auth-key", "bad", "--endpoint", "http://up/upload"])

    assert result.exit_code == 1
    assert "Unauthorized" in result.output


def test_upload_skips_missing_files(tmp_path, monkeypatch):
    present = tmp_path / "a.txt"
    present.write_text("a")
    handler = Recorder()
    patch_client(monkeypatch, handler)

    result = runner.invoke(cli.app, [
        "upload", str(tmp_path / "missing.txt"), str(present), "--auth-key", "k", "--endpoint", "http://up/upload",
    ])

    assert result.exit_code == 1
    assert len(handler.requests) == 1


def test_upload_needs_auth_key(tmp_path, monkeypatch):
    monkeypatch.setattr(cli.settings, "auth_key", "")
    monkeypatch.delenv("AUTH_KEY", raising=False)
    target = tmp_path / "a.txt"
    target.write_text("a")
    result = runner.invoke(cli.app, ["upload", str(target)])
    assert result.exit_code == 2


def test_reindex(tmp_path, monkeypatch):
    bucket_dir = tmp_path / "bucket"
    LocalBucket(str(bucket_dir)).put("files/a.txt", b"a", "text/plain", {"originalHash": "h"})
    monkeypatch.setattr(cli.settings, "local_storage_path", str(bucket_dir))
    monkeypatch.setattr(cli.settings, "storage_driver", "local")
    monkeypatch.setattr(cli.settings, "database_url", f"sqlite:///{tmp_path / 'idx.db'}")

    result = runner.invoke(cli.app, ["reindex"])

    assert result.exit_code == 0, result.output
    assert "Indexed 1 objects" in result.output
