from __future__ import annotations

import logging
import os
import ssl
import subprocess
import urllib.request

from .errors import ModelAssetError


logger = logging.getLogger(__name__)

HAND_LANDMARKER_TASK_URL = (
    "https://storage.googleapis.com/mediapipe-models/hand_landmarker/hand_landmarker/float16/latest/hand_landmarker.task"
)
FACE_LANDMARKER_TASK_URL = (
    "https://storage.googleapis.com/mediapipe-models/face_landmarker/face_landmarker/float16/latest/face_landmarker.task"
)


def ensure_hand_landmarker_task(model_path: str, *, timeout_s: int = 30) -> str:
    return ensure_model_asset(model_path, HAND_LANDMARKER_TASK_URL, timeout_s=timeout_s)


def ensure_face_landmarker_task(model_path: str, *, timeout_s: int = 30) -> str:
    return ensure_model_asset(model_path, FACE_LANDMARKER_TASK_URL, timeout_s=timeout_s)


def _remove_partial(model_path: str) -> None:
    try:
        if os.path.exists(model_path):
            os.remove(model_path)
    except OSError:
        logger.debug("Could not remove partial download %s", model_path, exc_info=True)


def ensure_model_asset(model_path: str, url: str, *, timeout_s: int = 30) -> str:
    """
    Ensure a MediaPipe ``.task`` model exists at `model_path`.

    If missing, attempts to download it from the official MediaPipe model bucket,
    first with urllib and then with `curl`.
    """

    if os.path.exists(model_path):
        return model_path

    os.makedirs(os.path.dirname(model_path) or ".", exist_ok=True)
    logger.info("Downloading %s -> %s", url, model_path)

    # 1) Python download first.
    try:
        # Some macOS Python builds ship without root certificates; prefer certifi if present.
        try:
            import certifi  # type: ignore

            ctx = ssl.create_default_context(cafile=certifi.where())
        except ImportError:
            ctx = ssl.create_default_context()

        with urllib.request.urlopen(url, context=ctx, timeout=timeout_s) as r, open(model_path, "wb") as f:
            f.write(r.read())
        return model_path
    except (OSError, ssl.SSLError) as e:
        first_error = e
        logger.warning("urllib download failed (%s); trying curl", e)
        _remove_partial(model_path)

    # 2) curl often succeeds when Python's certificate store is misconfigured.
    curl_err = ""
    try:
        proc = subprocess.run(
            ["curl", "-L", "-o", model_path, url],
            check=False,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
        )
        if proc.returncode == 0 and os.path.exists(model_path) and os.path.getsize(model_path) > 0:
            return model_path
        curl_err = f"\n\ncurl stderr:\n{proc.stderr.strip()}\n"
    except OSError as e:
        curl_err = f"\n\ncurl could not be run: {e}\n"

    _remove_partial(model_path)
    raise ModelAssetError(
        "Missing MediaPipe Tasks model file and auto-download failed.\n\n"
        f"Expected model at: {model_path}\n"
        f"URL: {url}\n\n"
        "Download it manually:\n"
        f'  mkdir -p "{os.path.dirname(model_path) or "."}"\n'
        f'  curl -L -o "{model_path}" "{url}"\n'
        f"{curl_err}"
    ) from first_error
