import subprocess
import urllib.request

import pytest

from gesturebooth import model_assets
from gesturebooth.errors import ModelAssetError


def test_existing_file_is_returned(tmp_path, monkeypatch):
    path = tmp_path / "hand_landmarker.task"
    path.write_bytes(b"model")

    def fail(*args, **kwargs):
        raise AssertionError("should not download")

    monkeypatch.setattr(urllib.request, "urlopen", fail)
    assert model_assets.ensure_hand_landmarker_task(str(path)) == str(path)


def test_download_failure_raises(tmp_path, monkeypatch):
    def no_network(*args, **kwargs):
        raise OSError("offline")

    monkeypatch.setattr(urllib.request, "urlopen", no_network)
    monkeypatch.setattr(
        subprocess,
        "run",
        lambda *a, **k: subprocess.CompletedProcess(a, 6, stdout="", stderr="could not resolve host"),
    )
    path = tmp_path / "models" / "face_landmarker.task"
    with pytest.raises(ModelAssetError) as exc:
        model_assets.ensure_face_landmarker_task(str(path))
    assert "could not resolve host" in str(exc.value)
    assert not path.exists()


def test_curl_fallback(tmp_path, monkeypatch):
    path = tmp_path / "hand.task"

    def no_network(*args, **kwargs):
        raise OSError("offline")

    def fake_curl(cmd, **kwargs):
        path.write_bytes(b"model")
        return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")

    monkeypatch.setattr(urllib.request, "urlopen", no_network)
    monkeypatch.setattr(subprocess, "run", fake_curl)
    assert model_assets.ensure_model_asset(str(path), "https://example.invalid/x.task") == str(path)
